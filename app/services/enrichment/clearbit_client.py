"""
Company enrichment providers.

Two interchangeable strategies sit behind EnrichmentProvider:
- ClearbitProvider calls the Clearbit Company API over HTTPS.
- MockEnrichmentProvider synthesizes a deterministic profile per domain.

build_enrichment_provider() picks one at construction time from settings;
callers never branch on which one they hold. Neither provider touches the
database: caching is the research service's job.
"""

import re
from typing import Any, Protocol

import httpx

from app.config import Settings, settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.research_domain import CompanyData, EnrichmentResult

logger = get_logger(__name__)

CLEARBIT_API_BASE_URL = "https://company.clearbit.com/v2/companies"

_VALID_DOMAIN_RE = re.compile(r"^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}$")
_STRIP_TLD_RE = re.compile(r"\.(com|io|co|net|org|ai|app|dev|tech|uk|au|ca|de|fr)$", re.IGNORECASE)

# Lookup tables for the mock provider. Order matters: indexes are derived
# from a hash of the domain, so reordering changes every mock profile.
MOCK_INDUSTRIES = (
    "Software",
    "Technology",
    "Financial Services",
    "Healthcare",
    "Marketing",
    "E-commerce",
    "Education",
    "Manufacturing",
)
MOCK_EMPLOYEE_RANGES = ("1-10", "11-50", "51-200", "201-500", "501-1000", "1001-5000")
MOCK_TECH_STACKS = (
    ("React", "Node.js", "PostgreSQL", "AWS"),
    ("Vue.js", "Python", "MongoDB", "GCP"),
    ("Angular", "Java", "MySQL", "Azure"),
    ("Next.js", "TypeScript", "Prisma", "Vercel"),
)
MOCK_CITIES = (
    "San Francisco, CA, USA",
    "New York, NY, USA",
    "Austin, TX, USA",
    "Seattle, WA, USA",
    "Boston, MA, USA",
)
MOCK_NOT_FOUND_DOMAINS = ("unknown-domain.com", "fake-company.xyz", "test123.net")


def is_valid_domain(domain: str) -> bool:
    return bool(domain) and bool(_VALID_DOMAIN_RE.match(domain))


def stable_domain_hash(value: str) -> int:
    """
    31-based rolling hash wrapped to a signed 32-bit integer, returned as
    its absolute value. Stable across processes, unlike hash().
    """
    h = 0
    for char in value:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def domain_to_company_name(domain: str) -> str:
    name = domain
    while True:
        stripped = _STRIP_TLD_RE.sub("", name)
        if stripped == name or not stripped:
            break
        name = stripped
    label = name.split(".")[-1] or domain
    return " ".join(word.capitalize() for word in re.split(r"[-_]", label) if word)


class EnrichmentProvider(Protocol):
    """Strategy interface for company lookups by domain."""

    name: str
    is_mock: bool

    async def enrich_company(self, domain: str) -> EnrichmentResult: ...

    async def close(self) -> None: ...


class MockEnrichmentProvider:
    """Deterministic stand-in used when no usable Clearbit key is configured."""

    name = "mock"
    is_mock = True

    async def enrich_company(self, domain: str) -> EnrichmentResult:
        if not is_valid_domain(domain):
            return EnrichmentResult.fail("INVALID_DOMAIN", f"Invalid domain format: {domain}")

        lowered = domain.lower()
        if any(blocked in lowered for blocked in MOCK_NOT_FOUND_DOMAINS):
            return EnrichmentResult.fail(
                "NOT_FOUND", f"[MOCK] No company data found for domain: {domain}"
            )

        logger.debug("Generating mock company profile", domain=domain)
        return EnrichmentResult.ok(self.build_profile(domain))

    @staticmethod
    def build_profile(domain: str) -> CompanyData:
        company_name = domain_to_company_name(domain)
        index = stable_domain_hash(domain)
        industry = MOCK_INDUSTRIES[index % len(MOCK_INDUSTRIES)]
        handle = domain.split(".")[0]

        return CompanyData(
            domain=domain,
            company_name=company_name,
            industry=industry,
            description=(
                f"{company_name} is a leading provider of innovative solutions in the "
                f"{industry.lower()} space. They help businesses achieve their goals through "
                "cutting-edge technology and exceptional service."
            ),
            employee_count=MOCK_EMPLOYEE_RANGES[index % len(MOCK_EMPLOYEE_RANGES)],
            location=MOCK_CITIES[index % len(MOCK_CITIES)],
            website=f"https://{domain}",
            linkedin_url=f"https://linkedin.com/company/{handle}",
            twitter_url=f"https://twitter.com/{handle}",
            technologies=list(MOCK_TECH_STACKS[index % len(MOCK_TECH_STACKS)]),
            raw_data={"_mock": True, "_domain": domain},
        )

    async def close(self) -> None:
        return None


class ClearbitProvider:
    """Clearbit Company API client (GET /v2/companies/find?domain=...)."""

    name = "clearbit"
    is_mock = False

    def __init__(self, api_key: str, timeout_seconds: float = 10.0):
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._client = self._create_client()

    def _create_client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(self._timeout_seconds)
        limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)
        return httpx.AsyncClient(timeout=timeout, limits=limits)

    async def close(self) -> None:
        await self._client.aclose()

    def _get_auth_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def enrich_company(self, domain: str) -> EnrichmentResult:
        if not is_valid_domain(domain):
            return EnrichmentResult.fail("INVALID_DOMAIN", f"Invalid domain format: {domain}")

        try:
            response = await self._client.get(
                f"{CLEARBIT_API_BASE_URL}/find",
                params={"domain": domain},
                headers=self._get_auth_headers(),
            )
        except httpx.TimeoutException as e:
            logger.warning("Clearbit request timed out", domain=domain, error=str(e))
            return EnrichmentResult.fail(
                "API_ERROR", f"Clearbit API error: request timed out after {self._timeout_seconds}s"
            )
        except httpx.HTTPError as e:
            logger.warning("Clearbit request failed", domain=domain, error=str(e))
            return EnrichmentResult.fail("API_ERROR", f"Clearbit API error: {e}")

        return self._handle_api_response(domain, response)

    def _handle_api_response(self, domain: str, response: httpx.Response) -> EnrichmentResult:
        status_code = response.status_code
        logger.debug("Clearbit response", domain=domain, status_code=status_code)

        if status_code == 404:
            return EnrichmentResult.fail(
                "NOT_FOUND", f"No company data found for domain: {domain}"
            )
        if status_code == 429:
            return EnrichmentResult.fail(
                "RATE_LIMITED", "Clearbit API rate limit exceeded. Please try again later."
            )
        if status_code in (401, 403):
            return EnrichmentResult.fail("API_ERROR", "Invalid or expired Clearbit API key")
        if not response.is_success:
            return EnrichmentResult.fail(
                "API_ERROR", f"Clearbit API error: HTTP {status_code}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            return EnrichmentResult.fail("API_ERROR", f"Clearbit API error: invalid JSON ({e})")

        if not isinstance(payload, dict) or not payload:
            return EnrichmentResult.fail("API_ERROR", "Clearbit API error: empty response")

        return EnrichmentResult.ok(transform_clearbit_response(domain, payload))


def transform_clearbit_response(domain: str, data: dict[str, Any]) -> CompanyData:
    """Map a Clearbit company payload onto CompanyData."""
    geo = data.get("geo") or {}
    parts = [geo.get("city"), geo.get("state"), geo.get("country")]
    location = ", ".join(p for p in parts if p) or data.get("location") or None

    linkedin_handle = (data.get("linkedin") or {}).get("handle")
    twitter_handle = (data.get("twitter") or {}).get("handle")

    category = data.get("category") or {}
    industry = (
        category.get("subIndustry")
        or category.get("industry")
        or category.get("industryGroup")
        or category.get("sector")
    )

    metrics = data.get("metrics") or {}
    site_domain = data.get("domain")

    return CompanyData(
        domain=domain,
        company_name=data.get("name") or data.get("legalName"),
        industry=industry,
        description=data.get("description"),
        employee_count=metrics.get("employeesRange"),
        location=location,
        website=f"https://{site_domain}" if site_domain else None,
        linkedin_url=f"https://linkedin.com/company/{linkedin_handle}" if linkedin_handle else None,
        twitter_url=f"https://twitter.com/{twitter_handle}" if twitter_handle else None,
        technologies=list(data.get("tech") or []),
        raw_data=data,
    )


def build_enrichment_provider(config: Settings = settings) -> EnrichmentProvider:
    """Choose the provider once from configuration."""
    if config.enrichment_mock_mode():
        logger.info(
            "Company enrichment running in mock mode",
            forced=config.USE_MOCK_ENRICHMENT,
        )
        return MockEnrichmentProvider()

    logger.info("Company enrichment using Clearbit", timeout=config.ENRICHMENT_TIMEOUT_SECONDS)
    return ClearbitProvider(config.CLEARBIT_API_KEY, config.ENRICHMENT_TIMEOUT_SECONDS)
