"""Prompt templates for screenplay auto-ingest."""

from __future__ import annotations

from ducktylo.ingest.taxonomy import CONTENT_WARNINGS, ERAS, FORMATS, GENRES

TRUNCATION_MARKER = "[TRUNCATED]"

SYSTEM_PROMPT = (
    "You are an expert script analyst working for Ducktylo, a platform that "
    "connects screenwriters (writers) and producers. Your job is to read a "
    "screenplay and produce structured metadata that fits Ducktylo's database "
    "schema.\n\n"
    "Always respond with STRICT JSON. Do NOT include explanations, markdown, "
    "or any text outside the JSON object."
)

_SCHEMA = """{
  "logline": string,                     // 1-3 sentences, high-level hook of the story
  "synopsis": string,                    // 3-10 paragraphs, concise story summary
  "genres": string[],                    // codes from GENRES
  "eras": string[],                      // codes from ERAS
  "locations": string[],                 // e.g. ["ISTANBUL", "SPACE STATION"]
  "content_warnings": string[],          // codes from CONTENT_WARNINGS
  "format": string | null,               // one code from FORMATS
  "estimated_page_count": number | null, // approximate script length in pages
  "characters": [
    {
      "name": string,
      "role": string | null,             // e.g. "lead", "support", "antagonist"
      "genders": string[],               // e.g. ["male"], ["female"], ["non-binary"]
      "races": string[],                 // optional free-form labels
      "start_age": number | null,
      "end_age": number | null,
      "any_age": boolean,                // true if age is flexible or not specified
      "description": string | null       // at most 250 characters
    }
  ]
}"""


def _codes(vocabulary: frozenset[str]) -> str:
    return ", ".join(sorted(vocabulary))


def truncate_script(text: str, max_chars: int) -> tuple[str, bool]:
    """Cut text to ``max_chars`` and append the truncation marker.

    Returns:
        The text to send and whether it was truncated
    """
    if len(text) <= max_chars:
        return text, False
    return f"{text[:max_chars]}\n\n{TRUNCATION_MARKER}", True


def build_user_prompt(script_text: str) -> str:
    """Embed the schema, vocabularies and script text in one user message."""
    return (
        "Read the following screenplay text and extract the requested "
        "structured data.\n\n"
        "Return a single JSON object with the following shape:\n\n"
        f"{_SCHEMA}\n\n"
        f"GENRES: {_codes(GENRES)}\n"
        f"ERAS: {_codes(ERAS)}\n"
        f"CONTENT_WARNINGS: {_codes(CONTENT_WARNINGS)}\n"
        f"FORMATS: {_codes(FORMATS)}\n\n"
        "Rules:\n"
        "- Use arrays even if there is only one value (genres, eras, locations, "
        "content_warnings, genders, races).\n"
        "- Only use the listed codes for genres, eras, content_warnings and "
        "format.\n"
        "- When any_age is false, give both start_age and end_age with "
        "start_age <= end_age.\n"
        "- Avoid spoilers that completely ruin major twists, but be honest "
        "and clear.\n"
        "- If some data is not inferable, set it to null (for scalars) or [] "
        "(for arrays).\n\n"
        f"SCREENPLAY TEXT ({TRUNCATION_MARKER} MARKS CUT CONTENT):\n"
        "----------------------------------------\n"
        f"{script_text}"
    )
