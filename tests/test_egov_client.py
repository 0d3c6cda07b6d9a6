"""
e-Gov client tests: XML parsing and request handling with the transport patched out.
"""

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from lawwatch.core.config import EGovSettings
from lawwatch.core.exceptions import ErrorCode, NotFoundError, ParsingError, UpstreamFetchError
from lawwatch.core.result import Ok, Err
from lawwatch.infrastructure.egov.client import (
    EGovClient, format_date, parse_law_detail, parse_law_list
)
from lawwatch.services.rate_limiter import RateLimiter

LAW_LIST_XML = """<?xml version="1.0" encoding="UTF-8"?>
<DataRoot>
  <Result><Code>0</Code><Message/></Result>
  <ApplData>
    <Category>1</Category>
    <LawNameListInfo>
      <LawId>321CONSTITUTION</LawId>
      <LawName>日本国憲法</LawName>
      <LawNo>昭和二十一年憲法</LawNo>
      <PromulgationDate>19461103</PromulgationDate>
    </LawNameListInfo>
    <LawNameListInfo>
      <LawId>129AC0000000089</LawId>
      <LawName>民法</LawName>
      <LawNo>明治二十九年法律第八十九号</LawNo>
      <PromulgationDate>1896/4/27</PromulgationDate>
    </LawNameListInfo>
    <LawNameListInfo>
      <LawId></LawId>
      <LawName>識別子なし</LawName>
    </LawNameListInfo>
  </ApplData>
</DataRoot>
"""

LAW_DETAIL_XML = """<?xml version="1.0" encoding="UTF-8"?>
<DataRoot>
  <Result><Code>0</Code><Message/></Result>
  <ApplData>
    <LawId>321CONSTITUTION</LawId>
    <LawFullText>
      <Law Era="Showa" Year="21" Num="" PromulgateMonth="11" PromulgateDay="3" LawType="Constitution" Lang="ja">
        <LawNum>昭和二十一年憲法</LawNum>
        <LawBody>
          <LawTitle>日本国憲法</LawTitle>
        </LawBody>
      </Law>
    </LawFullText>
  </ApplData>
</DataRoot>
"""

NOT_FOUND_XML = """<DataRoot><Result><Code>1</Code><Message>該当するデータがありません</Message></Result></DataRoot>"""

# ======================== PARSING ========================

class TestFormatDate:

    @pytest.mark.parametrize('value,expected', [
        ('19470503', '1947-05-03'),
        ('1947/5/3', '1947-05-03'),
        ('', ''),
        (None, ''),
        ('不明', '不明'),
    ])
    def test_format(self, value, expected):
        assert format_date(value) == expected


class TestParseLawList:

    def test_parses_entries_and_skips_incomplete(self):
        instruments = parse_law_list(LAW_LIST_XML, '憲法・法律')

        assert [i.id for i in instruments] == ['321CONSTITUTION', '129AC0000000089']
        constitution = instruments[0]
        assert constitution.name == '日本国憲法'
        assert constitution.number == '昭和二十一年憲法'
        assert constitution.promulgation_date == '1946-11-03'
        assert constitution.status == '施行中'
        assert constitution.category == '憲法・法律'
        assert instruments[1].promulgation_date == '1896-04-27'

    def test_malformed_xml(self):
        with pytest.raises(ParsingError):
            parse_law_list('<DataRoot>', '憲法・法律')

    def test_error_result_code(self):
        with pytest.raises(UpstreamFetchError):
            parse_law_list(NOT_FOUND_XML, '憲法・法律')


class TestParseLawDetail:

    def test_era_date_converted(self):
        instrument = parse_law_detail(LAW_DETAIL_XML, '321CONSTITUTION', '憲法・法律')

        assert instrument.name == '日本国憲法'
        assert instrument.number == '昭和二十一年憲法'
        assert instrument.promulgation_date == '1946-11-03'

    def test_error_result_code_is_not_found(self):
        with pytest.raises(NotFoundError):
            parse_law_detail(NOT_FOUND_XML, 'missing', '憲法・法律')

    def test_missing_title(self):
        xml = LAW_DETAIL_XML.replace('<LawTitle>日本国憲法</LawTitle>', '')
        with pytest.raises(ParsingError):
            parse_law_detail(xml, '321CONSTITUTION', '憲法・法律')

# ======================== CLIENT ========================

class TestEGovClient:

    @pytest.fixture
    def rate_limiter(self):
        return AsyncMock(spec=RateLimiter)

    @pytest.fixture
    def client(self, rate_limiter):
        return EGovClient(EGovSettings(base_url="https://egov.test/api/1"), rate_limiter=rate_limiter)

    @pytest.mark.asyncio
    async def test_fetch_all(self, client, rate_limiter):
        with patch.object(client, '_request', AsyncMock(return_value=(200, LAW_LIST_XML))) as request:
            result = await client.fetch_all()

        assert isinstance(result, Ok)
        assert result.value.total_count == 2
        request.assert_awaited_once_with("https://egov.test/api/1/lawlists/1")
        rate_limiter.wait_for_slot.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fetch_all_http_error(self, client):
        with patch.object(client, '_request', AsyncMock(return_value=(503, "unavailable"))):
            result = await client.fetch_all()

        assert result == Err("HTTP error! status: 503", ErrorCode.UPSTREAM_FETCH_ERROR)

    @pytest.mark.asyncio
    async def test_upstream_throttling(self, client):
        with patch.object(client, '_request', AsyncMock(return_value=(429, ""))):
            result = await client.fetch_detail('321CONSTITUTION')

        assert isinstance(result, Err)
        assert result.code is ErrorCode.RATE_LIMIT_ERROR

    @pytest.mark.asyncio
    async def test_fetch_detail(self, client):
        with patch.object(client, '_request', AsyncMock(return_value=(200, LAW_DETAIL_XML))) as request:
            result = await client.fetch_detail('321CONSTITUTION')

        assert result.value.id == '321CONSTITUTION'
        request.assert_awaited_once_with("https://egov.test/api/1/lawdata/321CONSTITUTION")

    @pytest.mark.asyncio
    async def test_fetch_detail_404(self, client):
        with patch.object(client, '_request', AsyncMock(return_value=(404, ""))):
            result = await client.fetch_detail('missing')

        assert result == Err("Law with ID 'missing' not found", ErrorCode.ENTITY_NOT_FOUND)

    @pytest.mark.asyncio
    async def test_parse_failure_reported(self, client):
        with patch.object(client, '_request', AsyncMock(return_value=(200, "not xml"))):
            result = await client.fetch_all()

        assert isinstance(result, Err)
        assert result.code is ErrorCode.PARSING_ERROR

    @pytest.mark.asyncio
    async def test_network_error(self, client):
        with patch('aiohttp.ClientSession', side_effect=aiohttp.ClientConnectionError("refused")):
            result = await client.fetch_all()

        assert isinstance(result, Err)
        assert result.code is ErrorCode.UPSTREAM_FETCH_ERROR
        assert result.error.startswith("Network error")

    def test_default_rate_limiter_from_settings(self):
        client = EGovClient(EGovSettings(rate_limit_max_requests=5, rate_limit_window_ms=2000))
        assert client.rate_limiter.config.max_requests == 5
        assert client.rate_limiter.config.window_ms == 2000
