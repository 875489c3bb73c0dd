"""
Fixed vocabularies used by the tokenizer and the similarity functions.
"""

from __future__ import annotations

# Lowercase surname particles. Matching is case-insensitive.
NAME_PREFIXES: frozenset[str] = frozenset(
    {
        "van",
        "de",
        "la",
        "von",
        "del",
        "di",
        "du",
        "le",
        "lo",
        "da",
        "des",
        "dos",
        "das",
        "el",
        "al",
        "do",
        "d",
        "o'",
        "mac",
        "mc",
        "saint",
        "st",
        "san",
        "santa",
    }
)

# Particles that may swallow one following capitalized word ("del Carmen").
COMPOUND_PREFIXES: frozenset[str] = frozenset(
    {"del", "de", "da", "das", "dos", "do", "du", "des", "di"}
)

# Compared without a trailing period and case-insensitively.
NAME_SUFFIXES: frozenset[str] = frozenset(
    {
        "jr",
        "sr",
        "ii",
        "iii",
        "iv",
        "v",
        "phd",
        "md",
        "jd",
        "mba",
        "ma",
        "ba",
        "bs",
        "ms",
        "bsc",
        "msc",
        "dr",
        "prof",
        "sir",
    }
)

# Alias -> canonical given name. Every canonical also maps to itself.
GIVEN_NAME_EQUIVALENTS: dict[str, str] = {
    "alex": "alexander",
    "alexander": "alexander",
    "alexandra": "alexandra",
    "alexis": "alexander",
    "ally": "allison",
    "ann": "anne",
    "anna": "anne",
    "annie": "anne",
    "anthony": "anthony",
    "antonio": "antonio",
    "beth": "elizabeth",
    "betsy": "elizabeth",
    "betty": "elizabeth",
    "bill": "william",
    "billy": "william",
    "bob": "robert",
    "bobby": "robert",
    "charles": "charles",
    "charlie": "charles",
    "charlotte": "charlotte",
    "chaz": "charles",
    "che": "ernesto",
    "chuck": "charles",
    "cathy": "catherine",
    "catherine": "catherine",
    "cathie": "catherine",
    "cathryn": "catherine",
    "frank": "francis",
    "francis": "francis",
    "francisco": "francisco",
    "fran": "francis",
    "frederic": "frederick",
    "frederick": "frederick",
    "fred": "frederick",
    "freddie": "frederick",
    "freddy": "frederick",
    "harold": "harold",
    "harry": "harry",
    "hal": "harold",
    "hank": "henry",
    "henry": "henry",
    "jack": "john",
    "jacob": "jacob",
    "jake": "jacob",
    "james": "james",
    "jamie": "james",
    "jen": "jennifer",
    "jenn": "jennifer",
    "jenny": "jennifer",
    "jennifer": "jennifer",
    "jesse": "jessica",
    "jess": "jessica",
    "jessica": "jessica",
    "jim": "james",
    "jimmy": "james",
    "joe": "joseph",
    "joey": "joseph",
    "john": "john",
    "jon": "jonathan",
    "jonathan": "jonathan",
    "jose": "jose",
    "joseph": "joseph",
    "joyce": "joyce",
    "kate": "katherine",
    "katherine": "katherine",
    "kathy": "catherine",
    "katy": "katherine",
    "katie": "katherine",
    "liz": "elizabeth",
    "lizzie": "elizabeth",
    "lou": "louis",
    "louis": "louis",
    "maggie": "margaret",
    "margaret": "margaret",
    "marie": "mary",
    "mary": "mary",
    "megan": "margaret",
    "meg": "margaret",
    "michael": "michael",
    "mick": "michael",
    "mickey": "michael",
    "mike": "michael",
    "manuel": "manuel",
    "manu": "manuel",
    "nancy": "anne",
    "nick": "nicholas",
    "nicholas": "nicholas",
    "nico": "nicholas",
    "paco": "francisco",
    "patricia": "patricia",
    "patty": "patricia",
    "peggy": "margaret",
    "pepe": "jose",
    "rick": "richard",
    "rich": "richard",
    "richard": "richard",
    "ricky": "richard",
    "rob": "robert",
    "robbie": "robert",
    "robert": "robert",
    "ron": "ronald",
    "ronnie": "ronald",
    "ronald": "ronald",
    "rose": "rose",
    "rosie": "rose",
    "sasha": "alexander",
    "sandy": "alexander",
    "ted": "theodore",
    "teddy": "theodore",
    "theodore": "theodore",
    "toni": "antonio",
    "tonya": "antonia",
    "will": "william",
    "willie": "william",
    "william": "william",
}

# Short-form links used by word comparison. Read in both directions.
ABBREVIATION_LINKS: dict[str, str] = {
    "jose": "joseph",
    "joseph": "joe",
    "robert": "rob",
    "charles": "chuck",
    "william": "will",
    "jonathan": "jon",
}

SOUNDEX_CODES: dict[str, str] = {
    **dict.fromkeys("bfpv", "1"),
    **dict.fromkeys("cgjkqsxz", "2"),
    **dict.fromkeys("dt", "3"),
    "l": "4",
    **dict.fromkeys("mn", "5"),
    "r": "6",
}

# Applied before Unicode decomposition; these do not decompose to a base letter.
DIGRAPH_SUBSTITUTIONS: dict[str, str] = {
    "ä": "ae",
    "ö": "oe",
    "ü": "ue",
    "ł": "l",
}
