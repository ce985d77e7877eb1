"""Turn messy ingredient text into tidy, deduplicated one-liners."""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from recipe_lens.app.services.url_parsing.constants import (
    FRACTION_CHARS,
    FRACTION_MAP,
    TRAILING_NOTE_WORDS,
    UNIT_ALIASES,
    UNIT_PLURALS,
    UNIT_SINGULAR_DISPLAY,
)
from recipe_lens.app.services.url_parsing.parsing_utils import clean_text, strip_tags

logger = logging.getLogger(__name__)

UNICODE_FRACTION = rf"[{FRACTION_CHARS}]"
QUANTITY = (
    r"(?:\d+(?:\.\d+)?\s*[–—-]\s*\d+(?:\.\d+)?"
    r"|\d+\s+\d+/\d+"
    r"|\d+/\d+"
    r"|\d+(?:\.\d+)?"
    rf"|{UNICODE_FRACTION})"
)
AMOUNT_RE = re.compile(rf"(?:^|(?<=[\s,;(]))({QUANTITY})(?![\d/%°])")
LEADING_QTY_RE = re.compile(rf"^({QUANTITY})(?![\d/%°])\s*(.*)$", re.S)
UNIT_TOKEN_RE = re.compile(r"^([A-Za-zÀ-ÿ.]+)(?:\s+([A-Za-zÀ-ÿ.]+))?")
LEADING_UNIT_OF_RE = re.compile(r"^([A-Za-z. ]+?)\s+of\s+(.*)$", re.I | re.S)
MIXED_UNICODE_RE = re.compile(rf"(\d)\s*({UNICODE_FRACTION})")
BULLET_RE = re.compile(r"^[\s\-–—•*·▪▫►▶✓✔]+")
MARKDOWN_RE = re.compile(r"[*_`]{1,3}")
PAREN_NOTE_RE = re.compile(r"\(([^)]*)\)")
TRAILING_NOTE_RE = re.compile(
    r",\s*(" + "|".join(w.replace(" ", r"\s*") for w in TRAILING_NOTE_WORDS) + r")\b",
    re.I,
)
SECTION_HEADER_RE = re.compile(r"^(?:for\s+the\s+.{1,40}|ingredients?(?:\s+needed)?|[^\d:]{1,40}):$", re.I)

NO_SPLIT_AFTER = {"to", "or", "x", "by", "plus", "about", "approximately", "approx", "around", "and"}
SALVAGE_STOP_WORDS = {"a", "an", "the", "of", "and", "or", "with", "for", "ingredients", "ingredient"}

SALT_RE = re.compile(r"^salt(?:\s*,?\s*to\s+taste)?$", re.I)
PEPPER_RE = re.compile(
    r"^(?:(?:freshly\s+)?(?:ground|cracked)\s+|black\s+|fresh\s+)*pepper"
    r"(?:\s*,?\s*to\s+taste)?(?:\s*,\s*[^,]+)*$",
    re.I,
)
SALT_AND_PEPPER = "Salt and pepper to taste"

BOTH_TAIL_RE = re.compile(r"(?:,?\s*and\s*)?salt\s+and\s+pepper\s+to\s+taste\.?$", re.I)
SALT_TAIL_RE = re.compile(r"salt\s+to\s+taste\.?$", re.I)
PEPPER_TAIL_RE = re.compile(r"pepper\s+to\s+taste\.?$", re.I)


@dataclass
class ParsedIngredientLine:
    original: str
    quantity: str
    unit: Optional[str]
    item: str
    note: Optional[str]
    canonical: str


def normalize_unit(token: Optional[str]) -> Optional[str]:
    """Map a unit spelling to its canonical singular name, or None."""
    if not token:
        return None
    clean = token.lower().replace(".", "").strip()
    if not clean:
        return None
    if clean in UNIT_ALIASES:
        return UNIT_ALIASES[clean]
    squished = re.sub(r"\s+", "", clean)
    if squished in UNIT_ALIASES:
        return UNIT_ALIASES[squished]
    if clean.endswith("s") and clean[:-1] in UNIT_ALIASES:
        return UNIT_ALIASES[clean[:-1]]
    return None


def should_pluralize(quantity: str) -> bool:
    """Whether a unit following this quantity takes its plural form."""
    qty = (quantity or "").strip()
    if not qty or qty == "1":
        return False
    if re.fullmatch(r"\d+/\d+", qty):
        return False
    if re.fullmatch(r"\d+\s+\d+/\d+", qty):
        return True
    if re.fullmatch(r"\d+(?:\.\d+)?\s*[–—-]\s*\d+(?:\.\d+)?", qty):
        return True
    if qty in FRACTION_MAP:
        return False
    try:
        return float(qty) > 1
    except ValueError:
        return False


def pluralize_unit(unit: str, quantity: str) -> str:
    if not unit:
        return ""
    if should_pluralize(quantity):
        return UNIT_PLURALS.get(unit, unit)
    return UNIT_SINGULAR_DISPLAY.get(unit, unit)


def _prepare(raw: str) -> str:
    text = strip_tags(str(raw)).replace(" ", " ")
    text = BULLET_RE.sub("", text)
    text = MARKDOWN_RE.sub("", text)
    text = MIXED_UNICODE_RE.sub(lambda m: f"{m.group(1)} {FRACTION_MAP[m.group(2)]}", text)
    # "/2 cup" is what is left of "1/2 cup" after some sites split the numerator off
    text = re.sub(r"^/(\d)", r"1/\1", text)
    if text.count(")") > text.count("("):
        text = text.rstrip(") ")
    return clean_text(text)


def is_section_header(line: str) -> bool:
    """Headers such as "For the sauce:" or "Ingredients:" that label a group."""
    text = clean_text(line)
    return bool(text) and bool(SECTION_HEADER_RE.match(text))


def peel_salt_pepper_tail(line: str) -> List[str]:
    """Split "... salt and pepper to taste" off into its own entry."""
    text = clean_text(line)
    if not text:
        return []
    for pattern, label in (
        (BOTH_TAIL_RE, SALT_AND_PEPPER),
        (SALT_TAIL_RE, "Salt to taste"),
        (PEPPER_TAIL_RE, "Pepper to taste"),
    ):
        if pattern.search(text):
            head = clean_text(pattern.sub("", text)).rstrip(",; ")
            # Leave "Sea salt to taste" alone, only peel a true tail
            if head and not re.search(r"[\d,;]", head):
                return [text]
            return [head, label] if head else [label]
    return [text]


def split_on_amounts(chunk: str) -> List[str]:
    """Start a new ingredient each time a new top-level amount appears."""
    text = clean_text(chunk)
    if not text:
        return []

    starts: List[int] = []
    depth = 0
    last = 0
    for match in AMOUNT_RE.finditer(text):
        pos = match.start(1)
        depth += text.count("(", last, pos) - text.count(")", last, pos)
        last = pos
        if not starts:
            starts.append(pos)
            continue
        if depth > 0:
            continue
        before = text[:pos].rstrip()
        if not before or before[-1] in ",-/–—":
            continue
        prev_word = before.split()[-1].lower().strip(".,;:")
        if prev_word in NO_SPLIT_AFTER:
            continue
        starts.append(pos)

    if len(starts) < 2:
        return peel_salt_pepper_tail(text)

    pieces: List[str] = []
    bounds = [0] + starts[1:] + [len(text)]
    for idx in range(len(bounds) - 1):
        piece = text[bounds[idx] : bounds[idx + 1]].strip(" ;")
        pieces.extend(peel_salt_pepper_tail(piece))
    return [p for p in pieces if p]


def _salvage_word(prefix: str) -> str:
    words = [w.strip(",.;:") for w in prefix.split()]
    words = [w for w in words if re.fullmatch(r"[A-Za-z][A-Za-z-]*", w)]
    for word in reversed(words):
        if word.lower() not in SALVAGE_STOP_WORDS and len(word) > 2:
            return word
    return ""


def _split_notes(text: str) -> tuple[str, Optional[str]]:
    notes: List[str] = []

    def _paren(match: re.Match) -> str:
        inner = clean_text(match.group(1))
        if inner:
            notes.append(inner)
        return " "

    core = PAREN_NOTE_RE.sub(_paren, text)

    def _trailing(match: re.Match) -> str:
        notes.append(clean_text(match.group(1)).lower())
        return ""

    core = TRAILING_NOTE_RE.sub(_trailing, core)
    core = clean_text(core).rstrip(",; ")
    unique: List[str] = []
    for note in notes:
        if note.lower() not in {n.lower() for n in unique}:
            unique.append(note)
    return core, (", ".join(unique) if unique else None)


def parse_ingredient_line(line: str) -> ParsedIngredientLine:
    """Parse one line into quantity, unit, item and note plus a canonical string."""
    original = clean_text(str(line))
    work = _prepare(original)

    salvage = ""
    first = AMOUNT_RE.search(work)
    if first and first.start(1) > 0:
        salvage = _salvage_word(work[: first.start(1)])
        work = work[first.start(1) :].strip()

    quantity = ""
    unit: Optional[str] = None
    rest = work

    qty_match = LEADING_QTY_RE.match(work)
    if qty_match:
        quantity = clean_text(qty_match.group(1))
        after = qty_match.group(2).strip()
        rest = after
        token_match = UNIT_TOKEN_RE.match(after)
        if token_match:
            one, two = token_match.group(1), token_match.group(2)
            if two and normalize_unit(f"{one} {two}"):
                unit = normalize_unit(f"{one} {two}")
                rest = after[token_match.end() :].strip()
            elif normalize_unit(one):
                unit = normalize_unit(one)
                rest = after[len(one) :].strip()
    else:
        lead = LEADING_UNIT_OF_RE.match(work)
        if lead and normalize_unit(lead.group(1)):
            unit = normalize_unit(lead.group(1))
            rest = lead.group(2).strip()

    if salvage and not re.search(rf"\b{re.escape(salvage)}\b", rest, re.I):
        rest = f"{salvage} {rest}".strip()

    rest = re.sub(r"^of\s+", "", rest, flags=re.I).strip()
    item, note = _split_notes(rest)

    parts: List[str] = []
    if quantity:
        parts.append(quantity)
    if unit:
        parts.append(pluralize_unit(unit, quantity))
        if not quantity:
            parts.append("of")
    parts.append(item)
    canonical = " ".join(p for p in parts if p)
    if note:
        canonical += " (optional)" if note.lower() == "optional" else f", {note}"
    canonical = clean_text(re.sub(r"\s+,", ",", canonical))

    return ParsedIngredientLine(
        original=original,
        quantity=quantity,
        unit=unit,
        item=item,
        note=note,
        canonical=canonical,
    )


def merge_salt_and_pepper(lines: List[str]) -> List[str]:
    """Collapse a standalone salt entry and a standalone pepper entry into one."""
    salt_idx = next((i for i, x in enumerate(lines) if SALT_RE.match(x)), None)
    pepper_idx = next((i for i, x in enumerate(lines) if PEPPER_RE.match(x)), None)
    if salt_idx is None or pepper_idx is None:
        return lines
    first, last = sorted((salt_idx, pepper_idx))
    merged = list(lines)
    merged.pop(last)
    merged[first] = SALT_AND_PEPPER
    return merged


def _dedupe(lines: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for line in lines:
        key = line.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(line)
    return out


def normalize_ingredient_lines(lines: Iterable[str]) -> List[str]:
    """Normalize, split, deduplicate and merge a list of raw ingredient lines."""
    expanded: List[str] = []
    for raw in lines or []:
        prepared = _prepare(raw)
        if not prepared or is_section_header(prepared):
            continue
        expanded.extend(split_on_amounts(prepared) or [prepared])

    canonical: List[str] = []
    for piece in expanded:
        parsed = parse_ingredient_line(piece)
        if parsed.canonical:
            canonical.append(parsed.canonical)

    result = _dedupe(merge_salt_and_pepper(_dedupe(canonical)))
    logger.debug("Normalized %d raw ingredient lines into %d", len(expanded), len(result))
    return result


def sanitize_ingredient_lines(lines: Iterable[str]) -> List[str]:
    """Light cleanup without canonicalization: bullets, headers, stray fragments."""
    out: List[str] = []
    for raw in lines or []:
        prepared = _prepare(raw)
        if prepared and not is_section_header(prepared):
            out.append(prepared)
    return _dedupe(out)


def normalize_ingredient_block(block: str) -> List[str]:
    """Normalize a paragraph of ingredients separated by newlines, semicolons or bullets."""
    chunks = re.split(r"\n|;|\||[•·▪▫►▶]", str(block or "").replace("\r", ""))
    return normalize_ingredient_lines(c for c in chunks if c.strip())
