import httpx
import pytest

from app.services.enrichment.clearbit_client import ClearbitProvider

FIND_URL = "https://company.clearbit.com/v2/companies/find?domain=stripe.com"
API_KEY = "sk_live_" + "q7w8e9r0" * 4

CLEARBIT_PAYLOAD = {
    "name": "Stripe",
    "legalName": "Stripe, Inc.",
    "domain": "stripe.com",
    "description": "Online payment processing for internet businesses.",
    "category": {"sector": "Information Technology", "industry": "Internet Software & Services"},
    "geo": {"city": "San Francisco", "state": "California", "country": "United States"},
    "metrics": {"employeesRange": "1001-5000"},
    "linkedin": {"handle": "stripe"},
    "twitter": {"handle": "stripe"},
    "tech": ["ruby", "react"],
}


@pytest.mark.asyncio
async def test_clearbit_success_transforms_payload(httpx_mock):
    httpx_mock.add_response(method="GET", url=FIND_URL, json=CLEARBIT_PAYLOAD)
    provider = ClearbitProvider(API_KEY)

    result = await provider.enrich_company("stripe.com")
    await provider.close()

    assert result.success is True
    data = result.data
    assert data.company_name == "Stripe"
    assert data.industry == "Internet Software & Services"
    assert data.location == "San Francisco, California, United States"
    assert data.employee_count == "1001-5000"
    assert data.linkedin_url == "https://linkedin.com/company/stripe"
    assert data.twitter_url == "https://twitter.com/stripe"
    assert data.website == "https://stripe.com"
    assert data.technologies == ["ruby", "react"]
    assert data.raw_data == CLEARBIT_PAYLOAD

    request = httpx_mock.get_requests()[0]
    assert request.headers["Authorization"] == f"Bearer {API_KEY}"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code, expected_code",
    [
        (404, "NOT_FOUND"),
        (429, "RATE_LIMITED"),
        (401, "API_ERROR"),
        (403, "API_ERROR"),
        (500, "API_ERROR"),
    ],
)
async def test_clearbit_error_mapping(httpx_mock, status_code, expected_code):
    httpx_mock.add_response(method="GET", url=FIND_URL, status_code=status_code, json={})
    provider = ClearbitProvider(API_KEY)

    result = await provider.enrich_company("stripe.com")
    await provider.close()

    assert result.success is False
    assert result.error.code == expected_code


@pytest.mark.asyncio
async def test_clearbit_timeout_maps_to_api_error(httpx_mock):
    httpx_mock.add_exception(httpx.ReadTimeout("timed out"), url=FIND_URL)
    provider = ClearbitProvider(API_KEY, timeout_seconds=2)

    result = await provider.enrich_company("stripe.com")
    await provider.close()

    assert result.success is False
    assert result.error.code == "API_ERROR"
    assert "timed out" in result.error.message


@pytest.mark.asyncio
async def test_clearbit_invalid_domain_skips_network(httpx_mock):
    provider = ClearbitProvider(API_KEY)

    result = await provider.enrich_company("no-dot")
    await provider.close()

    assert result.error.code == "INVALID_DOMAIN"
    assert httpx_mock.get_requests() == []
