"""
Static country registry.

Display names, Wikidata entity ids and data-availability tiers for the
countries Team Atlas covers. Tier membership is fixed and independent of
live source data.
"""

from dataclasses import dataclass
from typing import Optional

from ..normalizer.schemas import PriorityTier


@dataclass(frozen=True)
class CountryInfo:
    """Registry entry for one country."""

    code: str
    name: str
    wikidata_id: Optional[str]
    tier: PriorityTier


# Variant codes mapped to the ISO 3166-1 alpha-2 code used as registry key
CODE_ALIASES = {
    "GBR": "GB", "UK": "GB", "EN": "GB", "ENG": "GB", "SCO": "GB", "WAL": "GB", "NIR": "GB",
    "DEU": "DE", "GER": "DE",
    "ESP": "ES", "SPA": "ES",
    "FRA": "FR",
    "ITA": "IT",
    "NLD": "NL", "HOL": "NL",
    "PRT": "PT", "POR": "PT",
    "BRA": "BR",
    "USA": "US",
    "AUS": "AU",
    "CAN": "CA",
    "MEX": "MX",
    "ARG": "AR",
    "JPN": "JP",
    "KOR": "KR",
    "CHN": "CN",
    "IND": "IN",
    "RUS": "RU",
    "RSA": "ZA", "ZAF": "ZA",
}

# (code, display name, Wikidata entity id)
_COUNTRIES: tuple[tuple[str, str, Optional[str]], ...] = (
    # Europe
    ("AD", "Andorra", "Q228"), ("AL", "Albania", "Q222"), ("AM", "Armenia", "Q399"),
    ("AT", "Austria", "Q40"), ("AZ", "Azerbaijan", "Q227"), ("BA", "Bosnia and Herzegovina", "Q225"),
    ("BE", "Belgium", "Q31"), ("BG", "Bulgaria", "Q219"), ("BY", "Belarus", "Q184"),
    ("CH", "Switzerland", "Q39"), ("CY", "Cyprus", "Q229"), ("CZ", "Czech Republic", "Q213"),
    ("DE", "Germany", "Q183"), ("DK", "Denmark", "Q35"), ("EE", "Estonia", "Q191"),
    ("ES", "Spain", "Q29"), ("FI", "Finland", "Q33"), ("FO", "Faroe Islands", "Q4628"),
    ("FR", "France", "Q142"), ("GB", "United Kingdom", "Q145"), ("GE", "Georgia", "Q230"),
    ("GI", "Gibraltar", "Q1410"), ("GR", "Greece", "Q41"), ("HR", "Croatia", "Q224"),
    ("HU", "Hungary", "Q28"), ("IE", "Ireland", "Q27"), ("IL", "Israel", "Q801"),
    ("IS", "Iceland", "Q189"), ("IT", "Italy", "Q38"), ("KZ", "Kazakhstan", "Q232"),
    ("LI", "Liechtenstein", "Q347"), ("LT", "Lithuania", "Q37"), ("LU", "Luxembourg", "Q32"),
    ("LV", "Latvia", "Q211"), ("MC", "Monaco", "Q235"), ("MD", "Moldova", "Q217"),
    ("ME", "Montenegro", "Q236"), ("MK", "North Macedonia", "Q221"), ("MT", "Malta", "Q233"),
    ("NL", "Netherlands", "Q55"), ("NO", "Norway", "Q20"), ("PL", "Poland", "Q36"),
    ("PT", "Portugal", "Q45"), ("RO", "Romania", "Q218"), ("RS", "Serbia", "Q403"),
    ("RU", "Russia", "Q159"), ("SE", "Sweden", "Q34"), ("SI", "Slovenia", "Q215"),
    ("SK", "Slovakia", "Q214"), ("SM", "San Marino", "Q238"), ("TR", "Turkey", "Q43"),
    ("UA", "Ukraine", "Q212"), ("VA", "Vatican City", "Q237"), ("XK", "Kosovo", "Q1246"),
    ("IM", "Isle of Man", "Q9676"), ("JE", "Jersey", "Q785"), ("GG", "Guernsey", "Q25230"),
    # South America
    ("AR", "Argentina", "Q414"), ("BO", "Bolivia", "Q750"), ("BR", "Brazil", "Q155"),
    ("CL", "Chile", "Q298"), ("CO", "Colombia", "Q739"), ("EC", "Ecuador", "Q736"),
    ("GY", "Guyana", "Q734"), ("PE", "Peru", "Q419"), ("PY", "Paraguay", "Q733"),
    ("SR", "Suriname", "Q730"), ("UY", "Uruguay", "Q77"), ("VE", "Venezuela", "Q717"),
    # North and Central America, Caribbean
    ("AG", "Antigua and Barbuda", "Q781"), ("AI", "Anguilla", "Q25228"), ("AW", "Aruba", "Q21203"),
    ("BB", "Barbados", "Q244"), ("BM", "Bermuda", "Q23635"), ("BS", "Bahamas", "Q778"),
    ("BZ", "Belize", "Q242"), ("CA", "Canada", "Q16"), ("CR", "Costa Rica", "Q800"),
    ("CU", "Cuba", "Q241"), ("CW", "Curaçao", "Q25279"), ("DM", "Dominica", "Q784"),
    ("DO", "Dominican Republic", "Q786"), ("GD", "Grenada", "Q769"), ("GT", "Guatemala", "Q774"),
    ("HN", "Honduras", "Q783"), ("HT", "Haiti", "Q790"), ("JM", "Jamaica", "Q766"),
    ("KN", "Saint Kitts and Nevis", "Q763"), ("KY", "Cayman Islands", "Q5785"), ("LC", "Saint Lucia", "Q760"),
    ("MS", "Montserrat", "Q13353"), ("MX", "Mexico", "Q96"), ("NI", "Nicaragua", "Q811"),
    ("PA", "Panama", "Q804"), ("PR", "Puerto Rico", "Q1183"), ("SV", "El Salvador", "Q792"),
    ("SX", "Sint Maarten", "Q26273"), ("TC", "Turks and Caicos Islands", "Q18221"),
    ("TT", "Trinidad and Tobago", "Q754"), ("US", "United States", "Q30"),
    ("VC", "Saint Vincent and the Grenadines", "Q757"), ("VG", "British Virgin Islands", "Q25305"),
    ("VI", "United States Virgin Islands", "Q11703"), ("GP", "Guadeloupe", "Q17012"),
    ("MQ", "Martinique", "Q17054"), ("GF", "French Guiana", "Q3769"),
    # Africa
    ("AO", "Angola", "Q916"), ("BF", "Burkina Faso", "Q965"), ("BI", "Burundi", "Q967"),
    ("BJ", "Benin", "Q962"), ("BW", "Botswana", "Q963"), ("CD", "DR Congo", "Q974"),
    ("CF", "Central African Republic", "Q929"), ("CG", "Congo", "Q971"), ("CI", "Ivory Coast", "Q1008"),
    ("CM", "Cameroon", "Q1009"), ("CV", "Cape Verde", "Q1011"), ("DJ", "Djibouti", "Q977"),
    ("DZ", "Algeria", "Q262"), ("EG", "Egypt", "Q79"), ("ER", "Eritrea", "Q986"),
    ("ET", "Ethiopia", "Q115"), ("GA", "Gabon", "Q1000"), ("GH", "Ghana", "Q117"),
    ("GM", "Gambia", "Q1005"), ("GN", "Guinea", "Q1006"), ("GQ", "Equatorial Guinea", "Q983"),
    ("GW", "Guinea-Bissau", "Q1007"), ("KE", "Kenya", "Q114"), ("KM", "Comoros", "Q970"),
    ("LR", "Liberia", "Q1014"), ("LS", "Lesotho", "Q1013"), ("LY", "Libya", "Q1016"),
    ("MA", "Morocco", "Q1028"), ("MG", "Madagascar", "Q1019"), ("ML", "Mali", "Q912"),
    ("MR", "Mauritania", "Q1025"), ("MU", "Mauritius", "Q1027"), ("MW", "Malawi", "Q1020"),
    ("MZ", "Mozambique", "Q1029"), ("NA", "Namibia", "Q1030"), ("NE", "Niger", "Q1032"),
    ("NG", "Nigeria", "Q1033"), ("RE", "Réunion", "Q17070"), ("RW", "Rwanda", "Q1037"),
    ("SC", "Seychelles", "Q1042"), ("SD", "Sudan", "Q1049"), ("SL", "Sierra Leone", "Q1044"),
    ("SN", "Senegal", "Q1041"), ("SO", "Somalia", "Q1045"), ("SS", "South Sudan", "Q958"),
    ("ST", "São Tomé and Príncipe", "Q1039"), ("SZ", "Eswatini", "Q1050"), ("TD", "Chad", "Q657"),
    ("TG", "Togo", "Q945"), ("TN", "Tunisia", "Q948"), ("TZ", "Tanzania", "Q924"),
    ("UG", "Uganda", "Q1036"), ("YT", "Mayotte", "Q17063"), ("ZA", "South Africa", "Q258"),
    ("ZM", "Zambia", "Q953"), ("ZW", "Zimbabwe", "Q954"),
    # Asia
    ("AE", "United Arab Emirates", "Q878"), ("AF", "Afghanistan", "Q889"), ("BD", "Bangladesh", "Q902"),
    ("BH", "Bahrain", "Q398"), ("BN", "Brunei", "Q921"), ("BT", "Bhutan", "Q917"),
    ("CN", "China", "Q148"), ("HK", "Hong Kong", "Q8646"), ("ID", "Indonesia", "Q252"),
    ("IN", "India", "Q668"), ("IQ", "Iraq", "Q796"), ("IR", "Iran", "Q794"),
    ("JO", "Jordan", "Q810"), ("JP", "Japan", "Q17"), ("KG", "Kyrgyzstan", "Q813"),
    ("KH", "Cambodia", "Q424"), ("KP", "North Korea", "Q423"), ("KR", "South Korea", "Q884"),
    ("KW", "Kuwait", "Q817"), ("LA", "Laos", "Q819"), ("LB", "Lebanon", "Q822"),
    ("LK", "Sri Lanka", "Q854"), ("MM", "Myanmar", "Q836"), ("MN", "Mongolia", "Q711"),
    ("MO", "Macau", "Q14773"), ("MV", "Maldives", "Q826"), ("MY", "Malaysia", "Q833"),
    ("NP", "Nepal", "Q837"), ("OM", "Oman", "Q842"), ("PH", "Philippines", "Q928"),
    ("PK", "Pakistan", "Q843"), ("PS", "Palestine", "Q219060"), ("QA", "Qatar", "Q846"),
    ("SA", "Saudi Arabia", "Q851"), ("SG", "Singapore", "Q334"), ("SY", "Syria", "Q858"),
    ("TH", "Thailand", "Q869"), ("TJ", "Tajikistan", "Q863"), ("TL", "Timor-Leste", "Q574"),
    ("TM", "Turkmenistan", "Q874"), ("TW", "Taiwan", "Q865"), ("UZ", "Uzbekistan", "Q265"),
    ("VN", "Vietnam", "Q881"), ("YE", "Yemen", "Q805"),
    # Oceania
    ("AS", "American Samoa", "Q16641"), ("AU", "Australia", "Q408"), ("CK", "Cook Islands", "Q26988"),
    ("FJ", "Fiji", "Q712"), ("FM", "Micronesia", "Q702"), ("GU", "Guam", "Q16635"),
    ("KI", "Kiribati", "Q710"), ("MH", "Marshall Islands", "Q709"), ("NC", "New Caledonia", "Q33788"),
    ("NR", "Nauru", "Q697"), ("NZ", "New Zealand", "Q664"), ("PF", "Tahiti", "Q30971"),
    ("PG", "Papua New Guinea", "Q691"), ("PW", "Palau", "Q695"), ("SB", "Solomon Islands", "Q685"),
    ("TO", "Tonga", "Q678"), ("TV", "Tuvalu", "Q672"), ("VU", "Vanuatu", "Q686"),
    ("WS", "Samoa", "Q683"),
)

# Major football nations, refreshed daily
TIER_1_CODES = (
    "BR", "AR", "DE", "ES", "IT", "FR", "GB", "NL", "PT", "BE",
    "US", "MX", "NG", "GH", "EG", "MA", "ZA", "JP", "KR", "AU",
    "RU", "TR", "PL", "UA", "CR", "CO", "CL", "PE", "UY", "EC",
)

# Active football countries, refreshed weekly
TIER_2_CODES = (
    "CA", "JM", "GT", "HN", "SV", "PA", "NI", "CU", "HT", "DO",
    "TT", "BB", "GD", "LC", "VC", "KN", "AG", "DM", "BS", "GY",
    "SR", "BO", "PY", "VE", "NO", "SE", "DK", "FI", "IS", "IE",
    "CH", "AT", "CZ", "SK", "SI", "HR", "BA", "RS", "ME", "MK",
    "AL", "BG", "RO", "MD", "BY", "LT", "LV", "EE", "GE", "AM",
    "AZ", "KZ", "UZ", "TJ", "KG", "TM", "AF", "PK", "BD", "LK",
    "MM", "TH", "VN", "LA", "KH", "MY", "SG", "ID", "PH", "BN",
    "CN", "HK", "MO", "TW", "MN", "KP", "TN", "DZ", "LY", "SD",
    "ET", "KE", "UG", "TZ", "RW", "BI", "DJ", "SO", "ER", "SS",
    "CF", "TD", "CM", "GQ", "GA", "CG", "CD", "AO", "ZM", "ZW",
    "BW", "NA", "SZ", "LS", "MW", "MZ", "MG", "MU", "SC", "KM",
    "CV", "ST", "GW", "GN", "SL", "LR", "CI", "TG", "BJ", "BF",
    "NE", "ML", "SN", "GM", "MR", "SA", "AE", "QA", "OM", "YE",
    "JO", "SY", "LB", "IQ", "IR", "IL", "PS", "GR", "HU", "IN",
    "NZ",
)


def _build_registry() -> dict[str, CountryInfo]:
    tier_1 = set(TIER_1_CODES)
    tier_2 = set(TIER_2_CODES) - tier_1
    registry = {}
    for code, name, wikidata_id in _COUNTRIES:
        if code in tier_1:
            tier = PriorityTier.TIER_1
        elif code in tier_2:
            tier = PriorityTier.TIER_2
        else:
            tier = PriorityTier.TIER_3
        registry[code] = CountryInfo(code=code, name=name, wikidata_id=wikidata_id, tier=tier)
    return registry


COUNTRIES: dict[str, CountryInfo] = _build_registry()


def normalize_country_code(country_code: str) -> str:
    """Uppercase, trim and resolve alias codes ('uk' -> 'GB', 'GER' -> 'DE')."""
    code = (country_code or "").strip().upper()
    return CODE_ALIASES.get(code, code)


def get_country(country_code: str) -> CountryInfo:
    """
    Registry entry for a country code.

    Unknown codes get a synthetic tier 3 entry named after the code, with no
    Wikidata id.
    """
    code = normalize_country_code(country_code)
    info = COUNTRIES.get(code)
    if info is None:
        return CountryInfo(code=code, name=code, wikidata_id=None, tier=PriorityTier.TIER_3)
    return info


def classify_tier(country_code: str) -> PriorityTier:
    """Static data-availability tier for a country."""
    return get_country(country_code).tier


def countries_in_tier(tier: PriorityTier) -> list[str]:
    """Registry codes of one tier, in registry order."""
    return [code for code, info in COUNTRIES.items() if info.tier == tier]


def is_known_country(country_code: str) -> bool:
    return normalize_country_code(country_code) in COUNTRIES
