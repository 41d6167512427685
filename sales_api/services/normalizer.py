"""Row normalizer module.

Turns one loosely-typed spreadsheet row into the typed fields stored on a
``Sale``. Parsing helpers never raise on bad numeric input; they fall back
to zero. The only non-deterministic parts are the region and sale date
defaults, which draw from an injectable ``random.Random``.

Quantity is synthesized from ``rating_count`` because the source data has
no quantity column: ``max(1, rating_count // 100)``.
"""
import calendar
import math
import random
import re
from datetime import date, datetime, timedelta
from typing import Any, Mapping, Optional

REGIONS = ("North", "South", "East", "West", "Central")

DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_PRODUCT_NAME = "Unknown Product"
CATEGORY_DELIMITER = "|"

# Currency symbols, thousands separators and whitespace
_PRICE_JUNK = re.compile(r"[,\s₹$€£¥]")

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%m/%d/%Y", "%Y/%m/%d")

# Largest values the sales columns hold: NUMERIC(12,2), NUMERIC(3,1), INTEGER
MAX_PRICE = 9_999_999_999.99
MAX_RATING = 99.9
MAX_RATING_COUNT = 2**31 - 1


def _is_missing(value: Any) -> bool:
    """True for None, blank strings and NaN (pandas' empty cell)."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def _to_float(text: str) -> float:
    result = float(text)
    if math.isnan(result) or math.isinf(result):
        raise ValueError(f"Not a finite number: {text!r}")
    return result


def _clamp(value, low, high):
    return min(max(value, low), high)


def parse_price(value: Any) -> float:
    """
    Parse a price cell such as ``"₹1,299"`` or ``" 499.00 "``.

    Returns 0.0 when the value is missing or cannot be parsed. Negative
    prices (refund lines such as ``"-₹100"``) are stored as 0.
    """
    if _is_missing(value):
        return 0.0
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        if math.isnan(value) or math.isinf(value):
            return 0.0
        return _clamp(float(value), 0.0, MAX_PRICE)

    try:
        return _clamp(_to_float(_PRICE_JUNK.sub("", str(value))), 0.0, MAX_PRICE)
    except ValueError:
        return 0.0


def parse_discount(value: Any) -> float:
    """
    Parse a discount into a 0-1 fraction.

    ``"20%"``, ``20`` and ``0.2`` all give ``0.2``. Values above 1 are read
    as whole-number percentages and divided by 100; the result is clamped
    to ``[0, 1]``.
    """
    if _is_missing(value) or isinstance(value, bool):
        return 0.0

    try:
        number = _to_float(str(value).replace("%", "").strip())
    except ValueError:
        return 0.0

    fraction = number / 100 if number > 1 else number
    return _clamp(fraction, 0.0, 1.0)


def parse_rating(value: Any) -> float:
    """Parse a rating such as ``"4.2"``; 0.0 when unparsable or out of range."""
    if _is_missing(value) or isinstance(value, bool):
        return 0.0
    try:
        rating = _to_float(str(value).strip())
    except ValueError:
        return 0.0
    return rating if 0 <= rating <= MAX_RATING else 0.0


def parse_rating_count(value: Any) -> int:
    """Parse a review count such as ``"24,269"``; 0 when unparsable."""
    if _is_missing(value) or isinstance(value, bool):
        return 0
    try:
        count = int(_to_float(str(value).replace(",", "").strip()))
    except ValueError:
        return 0
    return _clamp(count, 0, MAX_RATING_COUNT)


def derive_quantity(rating_count: int) -> int:
    """Synthetic units sold: ``max(1, floor(rating_count / 100))``."""
    return max(1, rating_count // 100)


def parse_category(value: Any) -> str:
    """Keep the top-level category of a ``"A|B|C"`` path."""
    if _is_missing(value):
        return DEFAULT_CATEGORY
    head = str(value).split(CATEGORY_DELIMITER, 1)[0].strip()
    return head or DEFAULT_CATEGORY


def parse_sale_date(value: Any) -> date:
    """
    Parse a provided sale date.

    Raises:
        ValueError: If the value is not a recognizable date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    # ISO timestamps such as "2024-03-05T10:00:00" or "2024-03-05 10:00:00"
    if len(text) > 10 and text[4:5] == "-" and text[10:11] in ("T", " "):
        text = text[:10]

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    raise ValueError(f"Invalid sale_date: {value!r}")


def random_region(rng: random.Random) -> str:
    return rng.choice(REGIONS)


def _months_ago(today: date, months: int) -> date:
    month_index = today.year * 12 + today.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    # 31 March minus one month is the last day of February
    day = min(today.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def random_sale_date(rng: random.Random, today: Optional[date] = None) -> date:
    """Uniform random date within the 12 months up to ``today``."""
    end = today or date.today()
    start = _months_ago(end, 12)
    span = (end - start).days
    return start + timedelta(days=rng.randint(0, span))


def _text(value: Any) -> Optional[str]:
    if _is_missing(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def normalize_row(
    row: Mapping[str, Any],
    index: int,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> dict:
    """
    Convert one raw row into the column values of a ``Sale``.

    Args:
        row: Mapping of header name to cell value
        index: Zero-based position of the row in the upload
        rng: Source of randomness for the region/date defaults
        today: Reference date for the synthesized sale date

    Returns:
        Dict keyed by ``Sale`` column name (without ``id``/``created_at``)

    Raises:
        TypeError: If ``row`` is not a mapping
        ValueError: If a provided sale date cannot be parsed
    """
    if not isinstance(row, Mapping):
        raise TypeError(f"Expected a mapping of column values, got {type(row).__name__}")

    rng = rng or random.Random()

    rating_count = parse_rating_count(row.get("rating_count"))

    region = _text(row.get("region")) or random_region(rng)
    raw_date = row.get("sale_date")
    if _is_missing(raw_date):
        sale_date = random_sale_date(rng, today)
    else:
        sale_date = parse_sale_date(raw_date)

    return {
        "product_id": _text(row.get("product_id")) or f"PROD-{index}",
        "product_name": _text(row.get("product_name")) or DEFAULT_PRODUCT_NAME,
        "category": parse_category(row.get("category")),
        "discounted_price": parse_price(row.get("discounted_price")),
        "actual_price": parse_price(row.get("actual_price")),
        "discount_percentage": parse_discount(row.get("discount_percentage")),
        "rating": parse_rating(row.get("rating")),
        "rating_count": rating_count,
        "quantity": derive_quantity(rating_count),
        "region": region,
        "sale_date": sale_date,
    }
