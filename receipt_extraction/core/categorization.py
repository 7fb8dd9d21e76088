"""
Keyword categorization of receipt line items.
"""

import json
import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .models import ReceiptDraft, DEFAULT_CATEGORY
from .utils import strip_accents

logger = logging.getLogger(__name__)

# Checked in order; the first category with a keyword contained in the description wins.
DEFAULT_CATEGORY_KEYWORDS: Dict[str, Sequence[str]] = {
    "Meat": ("pollo", "pavo", "ternera", "cerdo", "lomo", "solomillo", "burguer", "hamburguesa",
             "jamón", "longaniza", "salchicha", "morcilla", "chorizo", "bacon", "panceta",
             "costilla", "chuleta", "filete", "bistec", "entrecot", "muslo", "pechuga", "alas",
             "carne", "albóndigas", "sobrasada"),
    "Fish & Seafood": ("pescado", "merluza", "salmón", "bacalao", "atún", "sardina", "boquerón",
                       "calamar", "sepia", "pulpo", "gamba", "langostino", "mejillón", "almeja",
                       "rodaja", "dorada", "lubina", "trucha", "perca", "rape", "bonito", "anchoa"),
    "Dairy": ("leche", "yogur", "queso", "mantequilla", "nata", "postre", "kefir", "actimel",
              "margarina", "flan", "natillas", "cuajada", "batido", "requesón", "mascarpone",
              "mozzarella"),
    "Fruit & Vegetables": ("manzana", "pera", "plátano", "banana", "naranja", "limón", "patata",
                           "cebolla", "zanahoria", "tomate", "lechuga", "ensalada", "aguacate",
                           "pimiento", "ajo", "calabacín", "berenjena", "pepino", "uva", "melón",
                           "sandía", "fresa", "cereza", "mandarina", "pomelo", "lima", "coco",
                           "piña", "kiwi", "espinaca", "acelga", "repollo", "coliflor", "brócoli",
                           "judía", "guisante", "haba", "maíz", "champiñón", "seta", "verdura",
                           "fruta"),
    "Bakery": ("pan", "barra", "hogaza", "croissant", "bollo", "tostada", "harina", "levadura",
               "baguette", "molde", "chapata", "magdalena", "bizcocho", "donut", "rosquilla",
               "ensaimada", "tarta", "pastel"),
    "Drinks": ("agua", "refresco", "coca", "fanta", "pepsi", "cerveza", "vino", "zumo", "néctar",
               "licor", "soda", "kas", "seven", "sprite", "tónica", "alcohol", "ginebra", "ron",
               "whisky", "vodka", "tequila", "brandy", "coñac", "anís", "sidra", "cava", "champán"),
    "Household": ("detergente", "suavizante", "lavavajillas", "fregasuelos", "lejía", "amoniaco",
                  "limpiacristales", "quitagrasas", "ambientador", "estropajo", "bayeta", "fregona",
                  "escoba", "recogedor", "cubo", "basura", "bolsa", "papel", "servilleta", "rollo",
                  "aluminio", "film", "batería", "pila", "bombilla"),
    "Personal Care": ("champú", "gel", "jabón", "desodorante", "pasta", "cepillo", "crema",
                      "colonia", "perfume", "compresa", "tampón", "protegeslip", "pañal",
                      "toallita", "acondicionador", "mascarilla", "loción", "aceite", "afeitado",
                      "cuchilla"),
    "Frozen": ("congelado", "helado", "pizza", "nuggets", "croquetas", "empanadilla"),
    "Snacks": ("patatas fritas", "chips", "chocolate", "bombón", "galleta", "turrón", "caramelo",
               "chicle", "doritos", "nachos", "pipas", "kikos", "frutos secos", "pistacho",
               "almendra", "nuez", "avellana", "gominola"),
    "Pantry": ("arroz", "pasta", "macarrones", "espagueti", "fideo", "tallarín", "legumbre",
               "lenteja", "garbanzo", "aceite", "vinagre", "sal", "azúcar", "huevo", "salsa",
               "tomate frito", "mayonesa", "ketchup", "mostaza", "especias", "pimienta", "orégano",
               "pimentón", "canela", "café", "té", "infusión", "cacao", "mermelada", "miel",
               "cereales"),
    "Pets": ("perro", "gato", "pienso", "arena", "collar", "correa", "juguete"),
}

# Checked before the keyword table
PRIORITY_OVERRIDES: Sequence[Tuple[str, str]] = (
    ("papel higienico", "Personal Care"),
    ("papel cocina", "Household"),
)


def _fold(s: str) -> str:
    return strip_accents(s or "").lower()


def _contains(text: str, keyword: str) -> bool:
    # Short keywords ("pan", "sal", "te") only count as whole words
    if len(keyword) <= 3:
        return re.search(r"\b" + re.escape(keyword) + r"\b", text) is not None
    return keyword in text


def load_rules(path: Optional[Path]) -> Dict:
    """Load categorization rules from JSON file."""
    if path is None or not path.exists():
        return {"categories": {}, "matchers": []}
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _rule_hits(rule: Dict, description: str, merchant: str) -> bool:
    """An "any" entry hits when either of its patterns matches."""
    vre = rule.get("vendor_re")
    tre = rule.get("text_re")
    if vre and re.search(vre, merchant, flags=re.IGNORECASE):
        return True
    if tre and re.search(tre, description, flags=re.IGNORECASE):
        return True
    return False


def _rule_holds(rule: Dict, description: str, merchant: str) -> bool:
    """An "all" entry holds when every pattern it sets matches."""
    vre = rule.get("vendor_re")
    tre = rule.get("text_re")
    if vre and not re.search(vre, merchant, flags=re.IGNORECASE):
        return False
    if tre and not re.search(tre, description, flags=re.IGNORECASE):
        return False
    return bool(vre or tre)


class Categorizer:
    """
    Assigns one label from a closed category set to item descriptions.

    Rules format (all keys optional):
        {
          "categories": {"Drinks": ["agua", "zumo"], "Bakery": ["pan"]},
          "overrides": [["agua con gas", "Drinks"], ["pan rallado", "Pantry"]],
          "matchers": [
            {"name": "IKEA", "any": [{"vendor_re": "IKEA"}], "category": "Household"},
            {"name": "Pet food", "all": [{"text_re": "PIENSO|CROQUETAS"},
                                         {"text_re": "PERRO|GATO"}], "category": "Pets"}
          ]
        }

    Matchers run first, in order; then the overrides from the rules, then the
    built-in priority overrides; then the keyword table. An "any" entry
    matches when its vendor_re or its text_re matches; an "all" entry needs
    every pattern it sets. A "categories" mapping replaces the built-in
    keyword table; a plain list of labels only adds labels.
    """

    def __init__(self, rules: Optional[Dict] = None,
                 default_category: str = DEFAULT_CATEGORY):
        rules = rules or {}
        categories = rules.get("categories")
        keyword_map = categories if isinstance(categories, dict) and categories else DEFAULT_CATEGORY_KEYWORDS
        self.keyword_map = {cat: tuple(_fold(k) for k in kws) for cat, kws in keyword_map.items()}
        self.extra_labels = list(categories) if isinstance(categories, list) else []
        self.overrides = [(_fold(keyword), category) for keyword, category in rules.get("overrides", [])]
        self.overrides.extend(PRIORITY_OVERRIDES)
        self.matchers = rules.get("matchers", [])
        self.default_category = default_category

    def match(self, description: str, merchant: str = "") -> Tuple[str, Optional[str]]:
        """
        Categorize a description.

        Returns:
            Tuple of (category, matcher_name); matcher_name is None unless a
            rules matcher decided the category.
        """
        d = description or ""
        v = merchant or ""

        for m in self.matchers:
            any_rules = m.get("any", [])
            all_rules = m.get("all", [])
            matched_any = any(_rule_hits(r, d, v) for r in any_rules) if any_rules else True
            matched_all = all(_rule_holds(r, d, v) for r in all_rules)
            if (any_rules or all_rules) and matched_any and matched_all:
                return (m.get("category") or self.default_category, m.get("name"))

        folded = _fold(d)
        if not folded:
            return (self.default_category, None)

        for keyword, category in self.overrides:
            if keyword in folded:
                return (category, None)

        for category, keywords in self.keyword_map.items():
            if any(_contains(folded, k) for k in keywords):
                return (category, None)

        return (self.default_category, None)

    def categorize(self, description: str, merchant: str = "") -> str:
        """Return the category label for a description."""
        return self.match(description, merchant)[0]

    def categorize_draft(self, draft: ReceiptDraft) -> ReceiptDraft:
        """Return a copy of draft with every item categorized."""
        items = []
        for item in draft.items:
            category, matcher = self.match(item.description, draft.merchant)
            if matcher:
                logger.debug("%r categorized as %s by matcher %s", item.description, category, matcher)
            items.append(replace(item, category=category))
        return draft.with_items(items)

    def categories(self) -> List[str]:
        """All labels this categorizer can produce, default last."""
        labels = set(self.keyword_map)
        labels.update(m.get("category") for m in self.matchers if m.get("category"))
        labels.update(category for _, category in self.overrides)
        labels.update(self.extra_labels)
        labels.discard(self.default_category)
        return sorted(labels) + [self.default_category]
