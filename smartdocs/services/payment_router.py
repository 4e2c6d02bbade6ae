"""
Payment routing by country

Customers in Arabic-speaking countries pay through Moyasar in SAR; everyone
else pays through Stripe in USD.
"""

from typing import Any, Dict, List, Mapping, Optional

from smartdocs.core.plans import STRIPE_PLANS

PROVIDER_STRIPE = "stripe"
PROVIDER_MOYASAR = "moyasar"

ARABIC_COUNTRIES = {
    "SA", "AE", "KW", "QA", "BH", "OM", "JO", "LB", "SY",
    "IQ", "EG", "LY", "TN", "DZ", "MA", "SD", "YE",
}

SAR_EXCHANGE_RATE = 3.75

COUNTRY_HEADERS = ("cf-ipcountry", "x-vercel-ip-country", "x-country-code")

PAYMENT_LOGOS = {
    PROVIDER_MOYASAR: ["mada", "visa", "mastercard", "applepay"],
    PROVIDER_STRIPE: ["visa", "mastercard", "amex", "applepay", "googlepay"],
}

PROVIDER_NAMES = {
    PROVIDER_STRIPE: {"en": "International Payment", "ar": "دفع دولي"},
    PROVIDER_MOYASAR: {"en": "Local Payment", "ar": "دفع محلي"},
}


def get_payment_config(country_code: Optional[str]) -> Dict[str, Any]:
    if country_code and country_code.upper() in ARABIC_COUNTRIES:
        return {
            "provider": PROVIDER_MOYASAR,
            "currency": "sar",
            "locale": "ar",
            "exchange_rate": SAR_EXCHANGE_RATE,
        }
    return {
        "provider": PROVIDER_STRIPE,
        "currency": "usd",
        "locale": "en",
        "exchange_rate": 1,
    }


def convert_price(usd_cents: int, config: Dict[str, Any]) -> int:
    return round(usd_cents * config["exchange_rate"])


def format_price(amount_cents: int, currency: str, locale: str = "en") -> str:
    amount = amount_cents / 100
    if currency.lower() == "sar":
        suffix = "ر.س." if locale == "ar" else "SAR"
        return f"{amount:.2f} {suffix}"
    return f"${amount:.2f}"


def get_payment_logos(provider: str) -> List[str]:
    return list(PAYMENT_LOGOS.get(provider, PAYMENT_LOGOS[PROVIDER_STRIPE]))


def get_provider_name(provider: str, locale: str = "en") -> str:
    names = PROVIDER_NAMES.get(provider, PROVIDER_NAMES[PROVIDER_STRIPE])
    return names.get(locale, names["en"])


def detect_country(headers: Mapping[str, str]) -> Optional[str]:
    """First country header set by the CDN or proxy, uppercased"""
    for header in COUNTRY_HEADERS:
        value = headers.get(header)
        if value:
            return value.upper()
    return None


def build_payment_options(country_code: Optional[str]) -> Dict[str, Any]:
    """Config plus localized plan prices, as shown on the pricing page"""
    config = get_payment_config(country_code)
    plans = {}
    for plan_key, plan in STRIPE_PLANS.items():
        prices = {}
        for interval in ("monthly", "yearly"):
            amount = convert_price(plan[interval], config)
            prices[interval] = {
                "amount": amount,
                "formatted": format_price(amount, config["currency"], config["locale"]),
            }
        plans[plan_key] = {"name": plan["name"], **prices}

    return {
        "country": country_code,
        **config,
        "plans": plans,
        "logos": get_payment_logos(config["provider"]),
        "provider_name": get_provider_name(config["provider"], config["locale"]),
    }
