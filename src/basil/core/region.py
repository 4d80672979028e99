# src/basil/core/region.py
"""
MULTI-REGION CONFIGURATION
Country detection and per-country region, currency and language tables.

Domain routing:
- basil.ind.in       -> India (IN), GST, Mumbai region
- basilsoftware.eu   -> Netherlands (NL) by default, Germany (DE) on request
- basilsoftware.de   -> Germany (DE)
"""

from typing import Dict, List, Optional

from basil.core.config import Settings, get_settings

COUNTRIES = ("IN", "NL", "DE")
DEFAULT_COUNTRY = "IN"

DOMAIN_COUNTRY_MAP: Dict[str, str] = {
    "basil.ind.in": "IN",
    "www.basil.ind.in": "IN",
    "basilsoftware.eu": "NL",
    "www.basilsoftware.eu": "NL",
    "basilsoftware.de": "DE",
    "www.basilsoftware.de": "DE",
}

COUNTRY_REGIONS: Dict[str, str] = {
    "IN": "ap-south-1",
    "NL": "eu-central-1",
    "DE": "eu-central-1",
}

COUNTRY_CURRENCIES: Dict[str, str] = {
    "IN": "INR",
    "NL": "EUR",
    "DE": "EUR",
}

CURRENCY_SYMBOLS: Dict[str, str] = {
    "INR": "₹",
    "EUR": "€",
}

COUNTRY_LANGUAGES: Dict[str, List[str]] = {
    "IN": ["en", "hi"],
    "NL": ["nl", "en"],
    "DE": ["de", "en"],
}

_LOCAL_HOSTS = ("localhost", "127.0.0.1")


def normalize_country(country: Optional[str]) -> Optional[str]:
    """Upper-case a country code, or None when it is not supported."""
    if not country:
        return None
    code = country.strip().upper()
    return code if code in COUNTRIES else None


def country_from_host(hostname: Optional[str], preferred: Optional[str] = None) -> Optional[str]:
    """Map a request hostname to a country."""
    if not hostname:
        return None

    host = hostname.lower().split(":")[0]
    preferred = normalize_country(preferred)

    if host in DOMAIN_COUNTRY_MAP:
        country = DOMAIN_COUNTRY_MAP[host]
        if country == "NL" and preferred == "DE":
            return "DE"
        return country

    # Subdomains and staging hosts
    if "basil.ind.in" in host:
        return "IN"
    if "basilsoftware.de" in host:
        return "DE"
    if "basilsoftware.eu" in host:
        return "DE" if preferred == "DE" else "NL"

    if host in _LOCAL_HOSTS or host.startswith("192.168."):
        return preferred or DEFAULT_COUNTRY

    return None


def country_from_timezone(timezone: Optional[str]) -> Optional[str]:
    if not timezone:
        return None
    if timezone.startswith("Europe/Berlin"):
        return "DE"
    if timezone.startswith("Europe/"):
        return "NL"
    if timezone in ("Asia/Kolkata", "Asia/Calcutta"):
        return "IN"
    return None


def detect_country(hostname: Optional[str] = None, preferred: Optional[str] = None,
                   timezone: Optional[str] = None) -> str:
    """
    Detect country.
    Priority: domain > stored preference > timezone > India.
    """
    return (
        country_from_host(hostname, preferred)
        or normalize_country(preferred)
        or country_from_timezone(timezone)
        or DEFAULT_COUNTRY
    )


def get_region(country: str) -> str:
    return COUNTRY_REGIONS.get(country, COUNTRY_REGIONS[DEFAULT_COUNTRY])


def get_currency(country: str) -> str:
    return COUNTRY_CURRENCIES.get(country, COUNTRY_CURRENCIES[DEFAULT_COUNTRY])


def get_currency_symbol(country: str) -> str:
    return CURRENCY_SYMBOLS[get_currency(country)]


def get_available_languages(country: str) -> List[str]:
    return list(COUNTRY_LANGUAGES.get(country, COUNTRY_LANGUAGES[DEFAULT_COUNTRY]))


def get_default_language(country: str) -> str:
    return get_available_languages(country)[0]


def get_api_endpoint(country: str, settings: Optional[Settings] = None) -> str:
    """Single regional API base URL for a country."""
    settings = settings or get_settings()
    return settings.region_api_urls.get(country) or settings.region_api_urls[DEFAULT_COUNTRY]


def format_currency(amount: float, country: str) -> str:
    """
    Format amount with the country's currency symbol.
    India groups digits in lakhs (1,23,456.78), EU in thousands (123,456.78).
    """
    symbol = get_currency_symbol(country)
    sign = "-" if amount < 0 else ""
    whole, fraction = f"{abs(amount):.2f}".split(".")

    if country == "IN" and len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    else:
        whole = f"{int(whole):,}"

    return f"{sign}{symbol}{whole}.{fraction}"


def region_info(country: str, settings: Optional[Settings] = None) -> Dict[str, object]:
    """Everything the UI needs to know about a country."""
    return {
        "country": country,
        "region": get_region(country),
        "currency": get_currency(country),
        "currency_symbol": get_currency_symbol(country),
        "languages": get_available_languages(country),
        "default_language": get_default_language(country),
        "api_endpoint": get_api_endpoint(country, settings),
        "tax_system": "GST" if country == "IN" else "VAT",
    }
