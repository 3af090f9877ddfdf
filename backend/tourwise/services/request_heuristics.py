"""Keyword/regex reading of free-text travel requests, used when no language model answers."""

import re
from datetime import date
from decimal import Decimal, InvalidOperation

from tourwise.schemas.search import ParsedRequest, RoomPreferences
from tourwise.services.geo import COUNTRIES, DEPARTURE_CITIES
from tourwise.services.scoring_engine import PRIORITY_PROFILES

MAX_HEURISTIC_CONFIDENCE = 0.3

# Anything above this is a typo or noise, not a holiday budget
MAX_BUDGET = 100_000_000
MAX_BUDGET_DIGITS = 12

MONTHS = {
    "january": ("january", "январ"),
    "february": ("february", "феврал"),
    "march": ("march", "март"),
    "april": ("april", "апрел"),
    "may": ("may", "мая", "май"),
    "june": ("june", "июн"),
    "july": ("july", "июл"),
    "august": ("august", "август"),
    "september": ("september", "сентябр"),
    "october": ("october", "октябр"),
    "november": ("november", "ноябр"),
    "december": ("december", "декабр"),
}

# Genitive forms used after "из" ("из Москвы")
_DEPARTURE_FORMS = {
    **{city: name for city, name in DEPARTURE_CITIES.items()},
    "москвы": "Moscow", "moscow": "Moscow",
    "питера": "Saint Petersburg", "петербурга": "Saint Petersburg",
    "санкт-петербурга": "Saint Petersburg", "saint petersburg": "Saint Petersburg",
    "st petersburg": "Saint Petersburg",
    "казани": "Kazan", "kazan": "Kazan",
    "екатеринбурга": "Ekaterinburg", "ekaterinburg": "Ekaterinburg",
    "новосибирска": "Novosibirsk", "novosibirsk": "Novosibirsk",
    "самары": "Samara", "samara": "Samara",
    "краснодара": "Krasnodar", "krasnodar": "Krasnodar",
}

_NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "один": 1, "одного": 1, "одним": 1, "два": 2, "двое": 2, "двух": 2, "двумя": 2,
    "три": 3, "трое": 3, "трех": 3, "трёх": 3, "четверо": 4, "четырех": 4,
}
_NUM = r"(\d+|" + "|".join(_NUMBER_WORDS) + r")"

_BUDGET_SUFFIXED = re.compile(r"(\d+(?:[.,]\d+)?)\s*(k|к|тыс\.?|тысяч\w*|mln|million|млн)(?!\w)", re.IGNORECASE)
_BUDGET_DOLLARS = re.compile(r"\$\s?(\d[\d,\s]*\d|\d)")
_BUDGET_PLAIN = re.compile(r"(?<![\d.])(\d{1,3}(?:[  ]\d{3})+|\d{5,})(?![\d.])")
_PER_PERSON = re.compile(r"per person|per head|на человека|на каждого|с человека", re.IGNORECASE)

_ADULTS = re.compile(_NUM + r"\s*(?:adults?|people|persons?|pax|взросл\w*|человек\w*|чел\b)", re.IGNORECASE)
_KIDS = re.compile(_NUM + r"\s*(?:kids?|children|child|детей|ребен\w*|ребён\w*|дет\w*)", re.IGNORECASE)
_ONE_KID = re.compile(r"with (?:a|one|our) (?:kid|child|son|daughter)|с ребен\w*|с ребён\w*", re.IGNORECASE)
_AGES = re.compile(r"(?<!\d)(\d{1,2})\s*(?:years? old|y\.?o\.?|лет|года|год)(?!\w)", re.IGNORECASE)
_STARS = re.compile(r"(\d)\s*(?:\*|★|-?stars?|звезд\w*|звёзд\w*)", re.IGNORECASE)
_NIGHTS = re.compile(r"(\d+)\s*(nights?|ноч\w*|days?|дн\w*|дней|суток)", re.IGNORECASE)
_TWO_WEEKS = re.compile(r"two weeks|2 weeks|две недели|2 недели", re.IGNORECASE)
_ONE_WEEK = re.compile(r"\ba week\b|one week|1 week|недел[юяи]", re.IGNORECASE)
_ISO_DATE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
_DOTTED_DATE = re.compile(r"\b(\d{1,2})\.(\d{1,2})\.(\d{4})\b")
_FROM_CITY = re.compile(r"(?:from|из)\s+([\w-]+(?:\s[\w-]+)?)", re.IGNORECASE)

_MEAL_KEYWORDS = [
    ("UAI", re.compile(r"ultra all[ -]inclusive|ультра вс[её] включено|\buai\b", re.IGNORECASE)),
    ("AI", re.compile(r"all[ -]inclusive|вс[её] включено|\bai\b", re.IGNORECASE)),
    ("FB", re.compile(r"full board|полный пансион|\bfb\b", re.IGNORECASE)),
    ("HB", re.compile(r"half board|полупансион|\bhb\b", re.IGNORECASE)),
    ("BB", re.compile(r"breakfast|завтрак|\bbb\b", re.IGNORECASE)),
]

_REQUIREMENTS = {
    "first_line": re.compile(r"first (?:beach )?line|1st line|перв\w* линии?|перв\w* линия|1 линия", re.IGNORECASE),
    "sand_beach": re.compile(r"sand\w* beach|песчан\w* пляж|песок", re.IGNORECASE),
    "animation": re.compile(r"animation|анимаци\w*", re.IGNORECASE),
    "aquapark": re.compile(r"aqua ?park|water ?park|аквапарк", re.IGNORECASE),
    "kids_club": re.compile(r"kids'? club|детск\w* клуб", re.IGNORECASE),
    "quiet": re.compile(r"\bquiet\b|тих\w*|спокойн\w*", re.IGNORECASE),
    "sea_view": re.compile(r"sea view|вид на море", re.IGNORECASE),
}

_ROOM_TYPES = {
    "suite": re.compile(r"\bsuite\b|люкс", re.IGNORECASE),
    "villa": re.compile(r"\bvilla\b|вилл\w*", re.IGNORECASE),
    "family": re.compile(r"family room|семейн\w* номер", re.IGNORECASE),
    "apartment": re.compile(r"apartment|апартамент\w*", re.IGNORECASE),
}

_STYLE_KEYWORDS = {
    "beach": ["beach", "sea", "sunbathe", "swim", "sand", "пляж", "море", "загорать", "купаться", "песок"],
    "family": ["kids", "child", "children", "family", "animation", "kids club",
               "дети", "ребен", "ребён", "семья", "анимация", "детский клуб", "смежные номера"],
    "active": ["excursion", "active", "entertainment", "party", "sport",
               "экскурсии", "активный", "развлечения", "дискотеки", "спорт"],
    "relaxing": ["quiet", "calm", "secluded", "relax", "тихий", "спокойный", "уединенный", "релакс", "тишина"],
    "budget": ["budget", "cheap", "inexpensive", "affordable", "бюджет", "недорого", "экономичный", "дешевый"],
    "luxury": ["luxury", "premium", "vip", "villa", "suite", "люкс", "премиум", "роскошный", "элитный", "вилла"],
    "romantic": ["honeymoon", "romantic", "anniversary", "couple", "sea view",
                 "вдвоем", "вдвоём", "романтика", "медовый месяц", "годовщина", "вид на море"],
}

# Styles without a preset of their own borrow the closest one
_STYLE_PRESET = {"luxury": "relaxing", "romantic": "relaxing"}

_QUESTIONS = {
    "destination": "Where would you like to go?",
    "departure_city": "Which city are you flying from?",
    "adults": "How many adults are traveling?",
    "dates": "When are you planning to travel?",
    "budget": "What is your budget?",
    "stars": "What hotel category do you prefer?",
    "room_preferences": "What kind of room do you prefer?",
}


def detect_travel_style(text: str) -> str:
    """Classify a request as beach, family, active, relaxing, budget, luxury or romantic.

    Counts keyword hits per style; ties go to the earlier style, and beach
    is the default when nothing matches.
    """
    lowered = text.lower()
    best, best_hits = "beach", 0
    for style, words in _STYLE_KEYWORDS.items():
        hits = sum(1 for w in words if w in lowered)
        if hits > best_hits:
            best, best_hits = style, hits
    return best


def parse_request(
    text: str,
    profile: dict | None = None,
    previous_context: dict | None = None,
    today: date | None = None,
) -> ParsedRequest:
    """Best-effort extraction; always returns a ParsedRequest with confidence <= 0.3."""
    today = today or date.today()
    lowered = text.lower()
    found = 0

    destinations = _find_countries(lowered)
    departure = _find_departure(lowered) or (profile or {}).get("departure_city")
    adults, children = _find_people(lowered)
    ages = [int(a) for a in _AGES.findall(lowered) if int(a) <= 17] if children else []
    budget, currency = _find_budget(text)
    if budget is not None and budget <= 0:
        budget = None
    stars_match = _STARS.search(text)
    stars = int(stars_match.group(1)) if stars_match and 1 <= int(stars_match.group(1)) <= 5 else None
    meal = next((code for code, pattern in _MEAL_KEYWORDS if pattern.search(text)), None)
    duration = _find_duration(text)
    start_date, end_date = _find_dates(text, today)
    flexible_month = None if start_date else _find_month(lowered)
    requirements = [name for name, pattern in _REQUIREMENTS.items() if pattern.search(text)]
    room_type = next((name for name, pattern in _ROOM_TYPES.items() if pattern.search(text)), None)

    if start_date:
        date_type = "fixed"
    elif flexible_month:
        date_type = "flexible"
    else:
        date_type = "anytime"

    for value in (destinations, departure, adults, children, budget, stars, meal, duration,
                  start_date or flexible_month, requirements):
        if value:
            found += 1

    parsed = ParsedRequest(
        destinations=destinations,
        departure_city=departure,
        date_type=date_type,
        start_date=start_date,
        end_date=end_date,
        flexible_month=flexible_month,
        duration=duration,
        budget=budget,
        budget_type="per_person" if budget and _PER_PERSON.search(text) else "total",
        currency=currency,
        adults=adults,
        children=children,
        children_ages=ages if len(ages) == children else [],
        stars=stars,
        meal_type=meal,
        room_preferences=RoomPreferences(room_type=room_type,
                                         view="sea" if "sea_view" in requirements else None),
        requirements=requirements,
        suggested_priorities=_suggest_priorities(text, requirements, meal, children, budget),
        confidence=min(MAX_HEURISTIC_CONFIDENCE, 0.05 + 0.025 * found),
        source="heuristic",
    )
    if previous_context:
        parsed = _merge_previous(parsed, previous_context)
    return _with_gaps(parsed)


# --- Extraction helpers ---

def _find_countries(lowered: str) -> list[str]:
    found = []
    for name, (_, aliases) in COUNTRIES.items():
        for alias in aliases:
            if re.search(rf"(?<!\w){re.escape(alias)}(?!\w)", lowered):
                found.append(name)
                break
    return found


def _find_departure(lowered: str) -> str | None:
    for match in _FROM_CITY.finditer(lowered):
        phrase = match.group(1)
        for candidate in (phrase, phrase.split(" ")[0]):
            if candidate in _DEPARTURE_FORMS:
                return _DEPARTURE_FORMS[candidate]
    return None


def _to_number(token: str) -> int:
    return int(token) if token.isdigit() else _NUMBER_WORDS[token.lower()]


def _find_people(lowered: str) -> tuple[int | None, int]:
    adults = None
    children = 0
    if m := _ADULTS.search(lowered):
        adults = _to_number(m.group(1))
    elif re.search(r"вдво[её]м|for two|couple|as a couple|with my (?:wife|husband|partner)", lowered):
        adults = 2
    elif re.search(r"втро[её]м", lowered):
        adults = 3
    elif re.search(r"\balone\b|один\b|одна\b|solo", lowered):
        adults = 1

    if m := _KIDS.search(lowered):
        children = _to_number(m.group(1))
    elif _ONE_KID.search(lowered):
        children = 1
    if adults is not None:
        adults = max(1, min(10, adults))
    return adults, max(0, min(10, children))


def _find_budget(text: str) -> tuple[int | None, str]:
    if m := _BUDGET_DOLLARS.search(text):
        return _amount(re.sub(r"[,\s]", "", m.group(1))), "USD"
    if m := _BUDGET_SUFFIXED.search(text):
        multiplier = 1_000_000 if m.group(2).lower() in ("mln", "million", "млн") else 1000
        return _amount(m.group(1).replace(",", "."), multiplier), "RUB"
    if m := _BUDGET_PLAIN.search(text):
        return _amount(re.sub(r"\s", "", m.group(1))), "RUB"
    return None, "RUB"


def _amount(digits: str, multiplier: int = 1) -> int | None:
    """Whole currency units, or None when the number is not a plausible budget."""
    if len(digits) > MAX_BUDGET_DIGITS:
        return None
    try:
        value = Decimal(digits) * multiplier
    except InvalidOperation:
        return None
    if not value.is_finite() or value > MAX_BUDGET:
        return None
    return int(value)


def _find_duration(text: str) -> int | None:
    if m := _NIGHTS.search(text):
        value = int(m.group(1))
        if 1 <= value <= 60:
            return value
    if _TWO_WEEKS.search(text):
        return 14
    if _ONE_WEEK.search(text):
        return 7
    return None


def _find_dates(text: str, today: date) -> tuple[date | None, date | None]:
    dates = []
    for y, mth, d in _ISO_DATE.findall(text):
        dates.append((int(y), int(mth), int(d)))
    for d, mth, y in _DOTTED_DATE.findall(text):
        dates.append((int(y), int(mth), int(d)))
    parsed = []
    for y, mth, d in dates:
        try:
            value = date(y, mth, d)
        except ValueError:
            continue
        if value >= today:
            parsed.append(value)
    if not parsed:
        return None, None
    parsed.sort()
    end = parsed[-1] if len(parsed) > 1 else None
    return parsed[0], end


def _find_month(lowered: str) -> str | None:
    for month, stems in MONTHS.items():
        for stem in stems:
            if re.search(rf"(?<!\w){stem}", lowered):
                return month
    return None


def _suggest_priorities(text: str, requirements: list[str], meal: str | None,
                        children: int, budget: int | None) -> dict[str, int]:
    style = detect_travel_style(text)
    preset = PRIORITY_PROFILES[_STYLE_PRESET.get(style, style)]
    priorities = preset.as_dict()
    if "first_line" in requirements or "sand_beach" in requirements:
        priorities["beach_line"] = max(priorities["beach_line"], 9)
    if meal in ("AI", "UAI"):
        priorities["meal_type"] = max(priorities["meal_type"], 9)
    if children:
        priorities["family_friendly"] = max(priorities["family_friendly"], 9)
    if "quiet" in requirements:
        priorities["quietness"] = max(priorities["quietness"], 9)
    if budget:
        priorities["price"] = max(priorities["price"], 7)
    return priorities


def _merge_previous(parsed: ParsedRequest, previous: dict) -> ParsedRequest:
    """Fill fields the new message left empty from the earlier turn."""
    try:
        earlier = ParsedRequest.model_validate(previous)
    except ValueError:
        return parsed
    updates = {}
    for name in ("destinations", "departure_city", "start_date", "end_date", "flexible_month",
                 "duration", "budget", "adults", "stars", "meal_type"):
        if not getattr(parsed, name) and getattr(earlier, name):
            updates[name] = getattr(earlier, name)
    if not parsed.children and earlier.children:
        updates["children"] = earlier.children
        updates["children_ages"] = earlier.children_ages
    if updates.get("start_date") and parsed.date_type == "anytime":
        updates["date_type"] = "fixed"
    elif updates.get("flexible_month") and parsed.date_type == "anytime":
        updates["date_type"] = "flexible"
    return parsed.model_copy(update=updates)


def _with_gaps(parsed: ParsedRequest) -> ParsedRequest:
    required = []
    if not parsed.destinations:
        required.append("destination")
    if not parsed.departure_city:
        required.append("departure_city")
    if not parsed.adults:
        required.append("adults")

    optional = []
    if parsed.date_type == "anytime":
        optional.append("dates")
    if not parsed.budget:
        optional.append("budget")
    if not parsed.stars:
        optional.append("stars")
    if not parsed.room_preferences.room_type:
        optional.append("room_preferences")

    return parsed.model_copy(update={
        "missing_required": required,
        "missing_optional": optional,
        "clarification_questions": [_QUESTIONS[k] for k in required + optional],
    })
