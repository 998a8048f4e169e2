# Utils package
from .continents import continent_of
from .common import (
    normalize_value,
    normalize_phone,
    location_tokens,
    like_pattern,
    total_pages,
    round_half_up,
    parse_bool,
)
