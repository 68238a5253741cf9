"""Oracle prompts for extraction, research, enrichment and merging.

Strict-mode prompts rely on the JSON schema sent alongside them; grounded
prompts can't use a schema, so they spell out the expected shape inline.
"""

import json
import re

from contact_graph.extract.models import EvidenceBundle
from contact_graph.graph.models import ContactEntity

URL_RE = re.compile(r"https?://\S+")

# JSON schema for strict-mode profile responses
PROFILE_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "title": {"type": "string"},
        "organization": {"type": "string"},
        "email": {"type": "string"},
        "phone": {"type": "string"},
        "location": {"type": "string"},
        "tags": {"type": "array", "items": {"type": "string"}},
        "summary": {"type": "string"},
        "relatedPeople": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "relationship": {"type": "string"},
                },
                "required": ["name", "relationship"],
            },
        },
    },
}

# Same shape, spelled out for grounded prompts
PROFILE_SHAPE = """{
  "name": "string",
  "title": "string (job title)",
  "organization": "string (company or organization)",
  "email": "string (optional)",
  "phone": "string (optional)",
  "location": "string",
  "tags": ["string", "string"],
  "summary": "string (professional biography)",
  "relatedPeople": [
    { "name": "string", "relationship": "string" }
  ]
}"""


def contains_url(text: str | None) -> bool:
    return bool(text and URL_RE.search(text))


def _dump(data) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2)


def build_extract_prompt(text: str, grounded: bool = False) -> str:
    """Prompt for turning free text (or a URL) into a new contact profile."""
    if grounded:
        return f"""The user provided the following input containing a URL:
"{text}"

Use web search to access the content of this link.
Task: identify the PRIMARY person described in the content and extract their professional profile.
If multiple people are mentioned, select the main subject of the page.
Infer 'relatedPeople' found in the context (colleagues, advisors, organizations).

Return ONLY a raw JSON object (no markdown formatting) matching this structure exactly:
{PROFILE_SHAPE}"""

    return f"""Extract person information from the following text.
Infer related people and organizations if mentioned, with their relationship to the person.
Write 'summary' as a brief professional biography based on the text.

TEXT:
{text}

OUTPUT JSON:"""


def build_research_prompt(name: str, organization: str = "") -> str:
    """Prompt for a grounded web search about an existing contact."""
    who = f'"{name}" of "{organization}"' if organization else f'"{name}"'
    return f"""Search the web for the latest professional activity, career history and background of {who}.
List 5 key facts about them, for example: main professional achievements, recent events,
specific positions held, education, or important partners and organizations.
Keep each fact to one or two sentences."""


def build_enrich_prompt(
    target: ContactEntity, evidence: EvidenceBundle, grounded: bool = False
) -> str:
    """Prompt for updating an existing profile from new evidence.

    Web information is only included when it survived source vetting, and
    the vetted sources are named so anything else can be ignored.
    """
    sections = [
        f"""Task: update the existing contact profile by merging in the new information provided below.

EXISTING PROFILE JSON:
{_dump(target.to_payload())}

INSTRUCTIONS:
1. Enhance 'summary' to be comprehensive.
2. Add new 'tags' if relevant skills or topics are found.
3. Update 'title', 'organization', 'email', 'phone', 'location' if better information is found.
4. Extract ALL related people and organizations into 'relatedPeople', with their relationship.
5. Do not change 'id'.
6. Return ONLY the JSON object. No markdown formatting."""
    ]

    web_summary = evidence.usable_web_summary
    if web_summary:
        sections.append(f"--- WEB SEARCH INFORMATION ---\n{web_summary}")
        if evidence.trusted_sources:
            listed = "\n".join(
                f"- {s.title} ({s.source}) {s.url}" for s in evidence.trusted_sources
            )
            sections.append(
                "IMPORTANT: only consider information validated by these sources:\n"
                f"{listed}\n"
                "Ignore anything attributed to other sources, and ignore conflicting information."
            )

    manual_text = evidence.usable_manual_text
    if manual_text:
        sections.append(f"--- USER PROVIDED NOTES / RESUME / URL ---\n{manual_text}")
        if grounded:
            sections.append(
                "The user provided URLs in the text above. Visit them with web search "
                "and extract the relevant profile details."
            )

    if evidence.manual_images:
        sections.append(
            "Refer to the attached images for additional profile details, such as resume content."
        )

    if grounded:
        sections.append(f"Return the JSON object in this structure:\n{PROFILE_SHAPE}")

    return "\n\n".join(sections)


def build_merge_prompt(profiles: list[ContactEntity]) -> str:
    """Prompt for consolidating several profiles of the same person."""
    payload = [p.to_payload() for p in profiles]
    return f"""These contact profiles represent the SAME person.
Merge them into one single, comprehensive profile.

PROFILES:
{_dump(payload)}

INSTRUCTIONS:
1. Use the most complete 'name'.
2. Use the most recent or most senior 'title' and 'organization'.
3. Combine unique 'tags'.
4. Combine 'relatedPeople', removing duplicates.
5. Merge the 'summary' texts into one.
6. Return a single JSON object."""
