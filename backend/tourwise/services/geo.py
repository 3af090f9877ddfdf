"""Country and departure-city reference data shared by providers and the request heuristics."""

# canonical name -> (ISO code, aliases in English and Russian, all lower-case)
COUNTRIES: dict[str, tuple[str, tuple[str, ...]]] = {
    "turkey": ("TR", ("turkey", "türkiye", "турция", "турцию", "турции", "antalya", "анталья", "анталию")),
    "egypt": ("EG", ("egypt", "египет", "египта", "египте", "hurghada", "хургада", "sharm", "шарм")),
    "uae": ("AE", ("uae", "emirates", "united arab emirates", "dubai", "оаэ", "эмираты", "дубай")),
    "thailand": ("TH", ("thailand", "таиланд", "тайланд", "таиланде", "phuket", "пхукет", "pattaya", "паттайя")),
    "cyprus": ("CY", ("cyprus", "кипр", "кипре")),
    "greece": ("GR", ("greece", "греция", "грецию", "греции", "crete", "крит")),
    "spain": ("ES", ("spain", "испания", "испанию", "испании")),
    "italy": ("IT", ("italy", "италия", "италию", "италии")),
    "tunisia": ("TN", ("tunisia", "тунис")),
    "maldives": ("MV", ("maldives", "мальдивы", "мальдивах")),
    "vietnam": ("VN", ("vietnam", "вьетнам")),
    "sri lanka": ("LK", ("sri lanka", "шри-ланка", "шри ланка")),
    "dominican republic": ("DO", ("dominican republic", "dominicana", "доминикана", "доминикану")),
    "cuba": ("CU", ("cuba", "куба", "кубу")),
    "mexico": ("MX", ("mexico", "мексика", "мексику")),
    "russia": ("RU", ("russia", "россия", "сочи", "sochi")),
    "abkhazia": ("AB", ("abkhazia", "абхазия", "абхазию")),
}

DEPARTURE_CITIES = {
    "москва": "Moscow",
    "санкт-петербург": "Saint Petersburg",
    "екатеринбург": "Ekaterinburg",
    "новосибирск": "Novosibirsk",
    "казань": "Kazan",
    "нижний новгород": "Nizhny Novgorod",
    "самара": "Samara",
    "краснодар": "Krasnodar",
}

DEFAULT_DEPARTURE_CITY = "Moscow"


def resolve_country(text: str | None) -> str | None:
    """Map a free-form destination to a canonical country name, or None."""
    if not text:
        return None
    value = text.strip().lower()
    if value in COUNTRIES:
        return value
    for name, (code, aliases) in COUNTRIES.items():
        if value == code.lower() or value in aliases:
            return name
    # Longer phrases such as "hotels in antalya"
    for name, (_, aliases) in COUNTRIES.items():
        if any(len(alias) > 3 and alias in value for alias in aliases):
            return name
    return None


def country_code(text: str | None) -> str | None:
    name = resolve_country(text)
    return COUNTRIES[name][0] if name else None


def departure_city(text: str | None) -> str:
    if not text:
        return DEFAULT_DEPARTURE_CITY
    return DEPARTURE_CITIES.get(text.strip().lower(), text.strip())
