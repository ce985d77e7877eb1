"""General text and markup utilities shared by every extractor."""

import html as html_lib
import json
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from recipe_lens.app.services.url_parsing.constants import COOKING_VERBS

TAG_RE = re.compile(r"<[^>]+>")
LINK_RE = re.compile(r"https?://\S+", re.I)
HASHTAG_RE = re.compile(r"(?<![\w&])#[\w-]+")
MENTION_RE = re.compile(r"(?<![\w.])@[\w.]+")
INGREDIENTS_WORD_RE = re.compile(r"\bingredients?\b", re.I)
COOKING_VERB_RE = re.compile(r"\b(" + "|".join(COOKING_VERBS) + r")\b", re.I)
NUMBERED_STEP_RE = re.compile(
    r"(?:^|\n|(?<=[.!?])[ \t])[ \t]*(?:step\s*\d+\s*[:.)\-]?|\d{1,2}[.)])\s+",
    re.I,
)
LEADING_STEP_NUMBER_RE = re.compile(r"^\s*(?:step\s*\d+\s*[:.)\-]?|\d{1,2}[.)])\s*", re.I)
INSTAGRAM_BOILERPLATE_RE = re.compile(
    r"^\s*[\d.,]+\s*[KkMm]?\s+likes?,?\s*[\d.,]+\s*[KkMm]?\s+comments?\s*[-–]\s*[^:]{1,120}:\s*",
    re.I,
)

BLOCK_TAGS = [
    "p",
    "div",
    "li",
    "ul",
    "ol",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "section",
    "article",
    "header",
    "footer",
    "tr",
    "table",
    "blockquote",
    "span",
]


def clean_text(text: Optional[str]) -> str:
    """Normalize whitespace in text."""
    return re.sub(r"\s+", " ", text or "").strip()


def decode_entities(text: Optional[str]) -> str:
    """Decode named and numeric HTML entities."""
    if not text:
        return ""
    # Double-encoded payloads ("&amp;quot;") show up in embedded JSON
    decoded = html_lib.unescape(text)
    if "&" in decoded and decoded != text:
        decoded = html_lib.unescape(decoded)
    return decoded


def strip_tags(value: Optional[str]) -> str:
    """Drop markup, decode entities and collapse whitespace."""
    if not value:
        return ""
    return clean_text(decode_entities(TAG_RE.sub(" ", value)))


def html_to_text_with_breaks(html: str) -> str:
    """Render a document to text keeping one line per block element."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup.find_all(["script", "style", "noscript", "template", "svg"]):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(BLOCK_TAGS):
        block.append("\n")
    lines = [clean_text(line) for line in soup.get_text().splitlines()]
    return "\n".join(line for line in lines if line)


def pick_meta(soup: BeautifulSoup, *names: str) -> Optional[str]:
    """Return the first non-empty <meta property|name=...> content."""
    for name in names:
        for attr in ("property", "name", "itemprop"):
            tag = soup.find("meta", attrs={attr: name})
            if tag and tag.get("content"):
                content = clean_text(decode_entities(tag["content"]))
                if content:
                    return content
    return None


def mentions_ingredients(text: Optional[str]) -> bool:
    return bool(text and INGREDIENTS_WORD_RE.search(text))


def has_cooking_verb(text: Optional[str]) -> bool:
    return bool(text and COOKING_VERB_RE.search(text))


def parse_iso8601_duration(duration: str) -> Optional[int]:
    """Parse an ISO-8601 duration string (e.g., PT1H30M, P0DT45M) into minutes."""
    if not duration or not isinstance(duration, str):
        return None
    match = re.fullmatch(
        r"P(?:(\d+)D)?T?(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?",
        duration.strip().upper(),
    )
    if not match:
        return None
    days = int(match.group(1) or 0)
    hours = int(match.group(2) or 0)
    minutes = int(match.group(3) or 0)
    seconds = float(match.group(4) or 0)
    total_minutes = days * 1440 + hours * 60 + minutes + (1 if seconds >= 30 else 0)
    return total_minutes or None


def parse_minutes(value) -> Optional[int]:
    """Parse a minutes value from various formats."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        iso_minutes = parse_iso8601_duration(value)
        if iso_minutes is not None:
            return iso_minutes
        match = re.search(r"(\d+)\s*(min|minute|minutes)", value, flags=re.I)
        if match:
            return int(match.group(1))
    return None


def parse_total_minutes(node: dict) -> Optional[int]:
    """Total time, or prep + cook when only those are declared."""
    total = parse_minutes(node.get("totalTime"))
    if total:
        return total
    prep = parse_minutes(node.get("prepTime")) or 0
    cook = parse_minutes(node.get("cookTime")) or 0
    return (prep + cook) or None


def parse_servings(value) -> Optional[int]:
    """Parse servings from various formats."""
    if value is None:
        return None
    if isinstance(value, list):
        for item in value:
            parsed = parse_servings(item)
            if parsed:
                return parsed
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        match = re.search(r"\d+", value)
        if match:
            return int(match.group())
    return None


def extract_image(value) -> Optional[str]:
    """Extract image URL from the shapes schema.org allows."""
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict):
        url = value.get("url") or value.get("contentUrl")
        return url.strip() if isinstance(url, str) and url.strip() else None
    if isinstance(value, list):
        for item in value:
            found = extract_image(item)
            if found:
                return found
    return None


def extract_instruction_text(instructions) -> List[str]:
    """Extract step text from strings, HowToStep objects and HowToSection lists."""
    steps: List[str] = []
    if isinstance(instructions, str):
        raw = decode_entities(instructions)
        if len(NUMBERED_STEP_RE.findall(raw)) >= 2:
            parts = NUMBERED_STEP_RE.split(raw)
        else:
            parts = re.split(r"\n+|<br\s*/?>", raw, flags=re.I)
        for part in parts:
            cleaned = strip_tags(part)
            if cleaned:
                steps.append(cleaned)
    elif isinstance(instructions, list):
        for entry in instructions:
            steps.extend(extract_instruction_text(entry))
    elif isinstance(instructions, dict):
        nested = instructions.get("itemListElement")
        if nested:
            steps.extend(extract_instruction_text(nested))
        else:
            text_val = instructions.get("text") or instructions.get("name") or instructions.get("description")
            cleaned = strip_tags(text_val) if isinstance(text_val, str) else ""
            if cleaned:
                steps.append(cleaned)
    return steps


def strip_step_number(text: str) -> str:
    return LEADING_STEP_NUMBER_RE.sub("", text or "", count=1)


def trim_trailing_punct(text: str) -> str:
    return re.sub(r"[\s.,;:!]+$", "", text or "").strip()


def split_directions_text(text: Optional[str], max_steps: int = 50) -> List[str]:
    """Split a free-text directions block into ordered steps."""
    if not text:
        return []
    body = text.replace("\r", "").strip()
    if len(NUMBERED_STEP_RE.findall(body)) >= 2:
        parts = NUMBERED_STEP_RE.split(body)
        preamble = parts[0]
        parts = parts[1:] if preamble.strip() and not has_cooking_verb(preamble) else parts
        steps = [trim_trailing_punct(clean_text(p)) for p in parts]
        return [s for s in steps if s][:max_steps]

    sentences = re.split(r"(?<=[.!?])\s+|\n+", body)
    steps = [trim_trailing_punct(clean_text(s)) for s in sentences]
    return [s for s in steps if s and has_cooking_verb(s)][:max_steps]


def strip_links_and_hashtags(text: Optional[str]) -> str:
    if not text:
        return ""
    stripped = LINK_RE.sub(" ", text)
    stripped = HASHTAG_RE.sub(" ", stripped)
    return re.sub(r"[ \t]{2,}", " ", stripped).strip()


def strip_instagram_boilerplate(text: Optional[str]) -> str:
    """Remove the "12 likes, 3 comments - user on date:" prefix and quoting."""
    if not text:
        return ""
    stripped = INSTAGRAM_BOILERPLATE_RE.sub("", text, count=1).strip()
    if len(stripped) >= 2 and stripped[0] in "\"“" and stripped.rstrip(".")[-1:] in "\"”":
        stripped = stripped.rstrip(".")[1:-1].strip()
    return stripped


def balanced_object_slice(text: str, start: int) -> Optional[str]:
    """Return the brace-balanced object beginning at text[start] == "{"."""
    if start < 0 or start >= len(text) or text[start] != "{":
        return None
    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : idx + 1]
    return None


def loads_object_at(text: str, start: int):
    """json.loads the balanced object starting at ``start``; None when it does not parse."""
    chunk = balanced_object_slice(text, start)
    if not chunk:
        return None
    try:
        return json.loads(chunk)
    except json.JSONDecodeError:
        return None
