"""
Classification tables for the normalizer.

Every rule list is evaluated top to bottom and the first match wins, so the
order is the priority: named organisms and substances must stay above the
generic buckets that would also match them (e.g. "Chlorpyrifos" above
"pesticide", "Undeclared Milk" above "allergen").
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Tuple


@dataclass(frozen=True)
class PatternRule:
    """Maps any text matching `pattern` to a canonical name (and category)."""
    pattern: Pattern
    canonical: str
    category: Optional[str] = None

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def _rule(pattern: str, canonical: str, category: Optional[str] = None) -> PatternRule:
    return PatternRule(re.compile(pattern, re.IGNORECASE), canonical, category)


def first_match(rules: Sequence[PatternRule], text: str) -> Optional[PatternRule]:
    """Return the first rule matching `text`, or None."""
    for rule in rules:
        if rule.matches(text):
            return rule
    return None


HAZARD_RULES: List[PatternRule] = [
    # Pathogens
    _rule(r"salmonella", "Salmonella", "Pathogen"),
    _rule(r"listeria|\bl\.\s*monocytogenes", "Listeria", "Pathogen"),
    _rule(r"shiga|\bstec\b|verotoxi", "E. coli (STEC)", "Pathogen"),
    _rule(r"\be\.?\s*coli\b|escherichia", "E. coli", "Pathogen"),
    _rule(r"norovirus", "Norovirus", "Pathogen"),
    _rule(r"hepatitis", "Hepatitis A", "Pathogen"),
    _rule(r"campylobacter", "Campylobacter", "Pathogen"),
    _rule(r"clostridium|botul", "Clostridium", "Pathogen"),
    _rule(r"bacillus\s+cereus", "Bacillus cereus", "Pathogen"),
    _rule(r"vibrio", "Vibrio", "Pathogen"),

    # Mycotoxins
    _rule(r"aflatoxin", "Aflatoxin", "Mycotoxin"),
    _rule(r"ochratoxin", "Ochratoxin", "Mycotoxin"),
    _rule(r"mycotoxin|deoxynivalenol|zearalenone|fumonisin|patulin", "Mycotoxin", "Mycotoxin"),

    # Pesticides: named substances before the generic bucket
    _rule(r"chlorpyrifos", "Chlorpyrifos", "Pesticide"),
    _rule(r"carbendazim", "Carbendazim", "Pesticide"),
    _rule(r"ethylene\s+oxide|2-chloroethanol", "Ethylene Oxide", "Pesticide"),
    _rule(r"pesticide", "Pesticide Residue", "Pesticide"),

    # Heavy metals
    _rule(r"mercury|\bhg\b", "Mercury", "Heavy Metal"),
    _rule(r"cadmium|\bcd\b", "Cadmium", "Heavy Metal"),
    _rule(r"\blead\b|\bpb\b", "Lead", "Heavy Metal"),
    _rule(r"arsenic", "Arsenic", "Heavy Metal"),

    # Allergens: named allergens before the generic bucket
    _rule(r"milk.*not\s+declared|undeclared.*milk", "Undeclared Milk", "Allergen"),
    _rule(r"peanut.*not\s+declared|undeclared.*peanut", "Undeclared Peanut", "Allergen"),
    _rule(r"gluten.*not\s+declared|undeclared.*gluten", "Undeclared Gluten", "Allergen"),
    _rule(
        r"allergen|undeclared\s+(egg|nut|soy|wheat|sesame|fish|shellfish|sulphite|mustard|celery)",
        "Undeclared Allergen",
        "Allergen",
    ),

    # Physical contaminants
    _rule(r"foreign\s+bod|glass|metal\s+(fragment|piece|particle)|plastic.*fragment|\binsects?\b",
          "Foreign Body", "Foreign Body"),

    # Toxins and pollutants
    _rule(r"histamine", "Histamine", "Natural Toxin"),
    _rule(r"dioxin|\bpcbs?\b", "Dioxins/PCBs", "Pollutant"),
    _rule(r"migration|\bbpa\b|phthalate", "Migration", "Migration"),

    # Regulatory
    _rule(r"novel\s+food|unauthori[sz]ed", "Unauthorised Substance", "Novel Food"),
    _rule(r"label|missing.*information|incorrect.*marking", "Labelling Issue", "Labelling"),
]


# Generic substring checks used only when no pattern rule and no embedded
# {category} marker resolved the hazard. The name stays the raw text.
HAZARD_KEYWORD_CATEGORIES: List[Tuple[str, str]] = [
    ("bacteri", "Pathogen"),
    ("pathogen", "Pathogen"),
    ("virus", "Pathogen"),
    ("micro-organism", "Micro-organism"),
    ("microbial", "Micro-organism"),
    ("mould", "Micro-organism"),
    ("mold", "Micro-organism"),
    ("yeast", "Micro-organism"),
    ("parasit", "Parasite"),
    ("anisakis", "Parasite"),
    ("heavy metal", "Heavy Metal"),
    ("toxin", "Natural Toxin"),
    ("pollutant", "Pollutant"),
    ("contaminant", "Contaminant"),
    ("chemical", "Chemical"),
    ("veterinary", "Veterinary Drug"),
    ("antibiotic", "Veterinary Drug"),
    ("radioactiv", "Radiation"),
    ("additive", "Additive"),
    ("colour", "Additive"),
    ("color", "Additive"),
    ("sweetener", "Additive"),
    ("preservative", "Additive"),
    ("sulphite", "Allergen"),
    ("sulfite", "Allergen"),
    ("undeclared", "Allergen"),
    ("packaging", "Packaging"),
    ("labelling", "Labelling"),
    ("labeling", "Labelling"),
    ("fraud", "Fraud"),
    ("adulterat", "Fraud"),
    ("counterfeit", "Fraud"),
    ("certificate", "Controls"),
    ("control", "Controls"),
    ("temperature", "Controls"),
    ("genetically modified", "GMO/Novel Food"),
    ("gmo", "GMO/Novel Food"),
    ("organoleptic", "Quality"),
    ("spoil", "Quality"),
    ("rotten", "Quality"),
    ("decompos", "Quality"),
    ("fragment", "Foreign Body"),
    ("foreign", "Foreign Body"),
]


# Upstream hazard category descriptions, found inside "{...}" markers.
# Keys are lowercase.
HAZARD_CATEGORY_TABLE = {
    "pathogenic micro-organisms": "Pathogen",
    "mycotoxins": "Mycotoxin",
    "pesticide residues": "Pesticide",
    "heavy metals": "Heavy Metal",
    "metals": "Heavy Metal",
    "novel food": "Novel Food",
    "labelling absent/incomplete/incorrect": "Labelling",
    "natural toxins (other)": "Natural Toxin",
    "environmental pollutants": "Pollutant",
    "industrial contaminants": "Contaminant",
    "migration": "Migration",
    "composition": "Composition",
    "biological contaminants": "Biological",
    "chemical contamination (other)": "Chemical",
    "non-pathogenic micro-organisms": "Micro-organism",
    "food additives and flavourings": "Additive",
    "allergens": "Allergen",
    "foreign bodies": "Foreign Body",
    "gmo / novel food": "GMO/Novel Food",
    "parasitic infestation": "Parasite",
    "radiation": "Radiation",
    "tses": "TSE",
    "adulteration / fraud": "Fraud",
    "organoleptic aspects": "Quality",
    "packaging defective / incorrect": "Packaging",
    "poor or insufficient controls": "Controls",
    "residues of veterinary medicinal products": "Veterinary Drug",
}


COUNTRY_RULES: List[PatternRule] = [
    _rule(r"^(republic\s+of\s+)?(türkiye|turkiye|turkey)$", "Turkey"),
    _rule(r"^u\.?s\.?a?\.?$|^united\s*states", "USA"),
    _rule(r"^u\.?k\.?$|^united\s*kingdom|^great\s*britain", "UK"),
    _rule(r"^uae$|^united\s+arab\s+emirates$", "United Arab Emirates"),
    _rule(r"^viet\s*nam$", "Vietnam"),
    _rule(r"^czech\s*republic$", "Czechia"),
    _rule(r"^the\s*netherlands$|^holland$", "Netherlands"),
    _rule(r"^russian\s*federation$", "Russia"),
    _rule(r"^republic\s*of\s*korea|^korea,?\s*republic", "South Korea"),
    _rule(r"^china$|^prc$|^people'?s\s+republic\s+of\s+china$", "China"),
    _rule(r"^brasil$", "Brazil"),
    _rule(r"^(cote|côte)\s+d'?ivoire$|^ivory\s+coast$", "Côte d'Ivoire"),
    _rule(r"^unknown|^not\s*determined|^n/?a$", "Unknown"),
]


PRODUCT_CATEGORY_RULES: List[PatternRule] = [
    _rule(r"^poultry|chicken|turkey\s+meat", "Poultry"),
    _rule(r"meat.*product|meat.*poultry", "Meat Products"),
    _rule(r"fish|seafood|crustacean|mollus|cephalopod|gastropod", "Fish & Seafood"),
    _rule(r"nut.*seed|seed.*nut", "Nuts & Seeds"),
    _rule(r"fruit.*vegetable|vegetable.*fruit|produce", "Fruits & Vegetables"),
    _rule(r"cereal|bakery|bread|pastry", "Cereals & Bakery"),
    _rule(r"milk.*product|dairy|cheese|yog(h)?urt", "Dairy"),
    _rule(r"herb.*spice|spice.*herb", "Herbs & Spices"),
    _rule(r"supplement|dietetic|vitamin", "Supplements"),
    _rule(r"cocoa|coffee|\btea\b", "Cocoa, Coffee & Tea"),
    _rule(r"fats?\s.*oils?|oils?\s.*fats?", "Fats & Oils"),
    _rule(r"sauce|condiment|soup|broth", "Sauces & Condiments"),
    _rule(r"prepared.*dish|snack|ready.*eat", "Prepared Foods"),
    _rule(r"mineral\s+water", "Mineral Water"),
    _rule(r"^alcoholic|\bwine\b|\bbeer\b", "Alcoholic Beverages"),
    _rule(r"beverage|drink", "Beverages"),
    _rule(r"\beggs?\b", "Eggs"),
    _rule(r"food.*contact|packaging.*material", "Food Contact Materials"),
    _rule(r"pet\s*food", "Pet Food"),
    _rule(r"\bfeed", "Animal Feed"),
    _rule(r"additive|flavour", "Additives"),
    _rule(r"confection|sweet|candy|chocolate", "Confectionery"),
    _rule(r"ice.*cream|dessert", "Desserts"),
    _rule(r"honey", "Honey"),
]


# Verbose upstream product categories with no pattern rule. Keys are lowercase.
PRODUCT_CATEGORY_TABLE = {
    "other food product / mixed": "Other",
    "not determined / other": "Other",
    "other": "Other",
    "live animals": "Live Animals",
    "natural mineral water": "Mineral Water",
    "gastropods": "Fish & Seafood",
}
