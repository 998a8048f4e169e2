"""
Country name to continent lookup.

Keys are lower-cased country names plus the common short forms people type
into the app ("usa", "uk", "uae"). `continent_of` returns None for anything
it does not recognise.
"""
from typing import Optional

AFRICA = "Africa"
ANTARCTICA = "Antarctica"
ASIA = "Asia"
EUROPE = "Europe"
NORTH_AMERICA = "North America"
OCEANIA = "Oceania"
SOUTH_AMERICA = "South America"

CONTINENTS = (AFRICA, ANTARCTICA, ASIA, EUROPE,
              NORTH_AMERICA, OCEANIA, SOUTH_AMERICA)

_COUNTRIES = {
    AFRICA: [
        "algeria", "angola", "benin", "botswana", "burkina faso", "burundi",
        "cabo verde", "cape verde", "cameroon", "central african republic",
        "chad", "comoros", "congo", "republic of the congo",
        "democratic republic of the congo", "dr congo", "drc",
        "cote d'ivoire", "côte d'ivoire", "ivory coast", "djibouti", "egypt",
        "equatorial guinea", "eritrea", "eswatini", "swaziland", "ethiopia",
        "gabon", "gambia", "the gambia", "ghana", "guinea", "guinea-bissau",
        "kenya", "lesotho", "liberia", "libya", "madagascar", "malawi",
        "mali", "mauritania", "mauritius", "morocco", "mozambique", "namibia",
        "niger", "nigeria", "rwanda", "sao tome and principe", "senegal",
        "seychelles", "sierra leone", "somalia", "south africa",
        "south sudan", "sudan", "tanzania", "togo", "tunisia", "uganda",
        "zambia", "zimbabwe", "western sahara",
    ],
    ANTARCTICA: ["antarctica"],
    ASIA: [
        "afghanistan", "armenia", "azerbaijan", "bahrain", "bangladesh",
        "bhutan", "brunei", "cambodia", "china", "prc", "cyprus", "georgia",
        "hong kong", "india", "indonesia", "iran", "iraq", "israel", "japan",
        "jordan", "kazakhstan", "kuwait", "kyrgyzstan", "laos", "lebanon",
        "macau", "malaysia", "maldives", "mongolia", "myanmar", "burma",
        "nepal", "north korea", "oman", "pakistan", "palestine",
        "philippines", "qatar", "saudi arabia", "ksa", "singapore",
        "south korea", "korea", "sri lanka", "syria", "taiwan", "tajikistan",
        "thailand", "timor-leste", "east timor", "turkey", "türkiye",
        "turkiye", "turkmenistan", "united arab emirates", "uae",
        "uzbekistan", "vietnam", "viet nam", "yemen",
    ],
    EUROPE: [
        "albania", "andorra", "austria", "belarus", "belgium",
        "bosnia and herzegovina", "bosnia", "bulgaria", "croatia",
        "czech republic", "czechia", "denmark", "estonia", "finland",
        "france", "germany", "greece", "hungary", "iceland", "ireland",
        "italy", "kosovo", "latvia", "liechtenstein", "lithuania",
        "luxembourg", "malta", "moldova", "monaco", "montenegro",
        "netherlands", "the netherlands", "holland", "north macedonia",
        "macedonia", "norway", "poland", "portugal", "romania", "russia",
        "russian federation", "san marino", "serbia", "slovakia", "slovenia",
        "spain", "sweden", "switzerland", "ukraine", "united kingdom", "uk",
        "great britain", "britain", "england", "scotland", "wales",
        "northern ireland", "vatican city", "vatican", "gibraltar",
    ],
    NORTH_AMERICA: [
        "antigua and barbuda", "bahamas", "the bahamas", "barbados",
        "belize", "canada", "costa rica", "cuba", "dominica",
        "dominican republic", "el salvador", "grenada", "guatemala", "haiti",
        "honduras", "jamaica", "mexico", "nicaragua", "panama",
        "saint kitts and nevis", "saint lucia",
        "saint vincent and the grenadines", "trinidad and tobago",
        "united states", "united states of america", "usa", "us", "america",
        "puerto rico", "greenland", "bermuda", "aruba", "curacao",
        "cayman islands",
    ],
    OCEANIA: [
        "australia", "fiji", "kiribati", "marshall islands", "micronesia",
        "nauru", "new zealand", "palau", "papua new guinea", "samoa",
        "solomon islands", "tonga", "tuvalu", "vanuatu", "french polynesia",
        "tahiti", "new caledonia", "guam",
    ],
    SOUTH_AMERICA: [
        "argentina", "bolivia", "brazil", "chile", "colombia", "ecuador",
        "guyana", "paraguay", "peru", "suriname", "uruguay", "venezuela",
        "french guiana",
    ],
}

COUNTRY_TO_CONTINENT = {
    country: continent
    for continent, countries in _COUNTRIES.items()
    for country in countries
}


def continent_of(country: Optional[str]) -> Optional[str]:
    """Return the continent name for `country`, or None when unmapped."""
    if not country:
        return None
    return COUNTRY_TO_CONTINENT.get(country.strip().lower())
