"""
Prompts for cold email generation and parsing of the model's reply.
"""

import json
import re

from app.infrastructure.observability.logging import get_logger
from app.models.domain.contact_domain import Contact
from app.models.domain.email_domain import ProductContext
from app.models.domain.research_domain import CompanyResearch

logger = get_logger(__name__)


class EmailParseError(ValueError):
    """Model output did not contain a usable subject and body."""


EMAIL_SYSTEM_PROMPT = """You are an expert B2B cold email copywriter. Your job is to write highly personalized, conversion-focused cold emails.

### Core Principles
1. Personalization is key - reference specific details about the recipient's company
2. Lead with value, not features - focus on outcomes and benefits
3. Keep it concise - busy executives skim, so every word must earn its place
4. Sound human, not salesy - avoid marketing jargon and buzzwords
5. One clear call-to-action - make the next step obvious and easy

### Email Structure
- Subject: 5-8 words, creates curiosity, personalized when possible
- Opening: 1-2 sentences that show you've done your research
- Value Bridge: connect their situation to your solution (2-3 sentences)
- Proof/Credibility: brief mention of results or relevance
- CTA: simple, low-commitment ask (reply, quick call, etc.)

### Output Requirements
Return ONLY valid JSON (no backticks, no prose) with exactly this structure:
{"subject": "Email subject line here", "body": "Full email body here with line breaks as \\n"}
"""

TONE_GUIDANCE = {
    "professional": "Use formal but friendly language. Be direct and respectful.",
    "casual": "Use a relaxed, conversational tone. Feel free to use contractions and be more informal.",
    "friendly": "Be warm and approachable. Use a personable tone that builds rapport.",
    "formal": "Use highly professional language. Maintain business formality throughout.",
    "enthusiastic": "Show genuine excitement about helping them. Be energetic but not over-the-top.",
}


def get_tone_guidance(tone: str | None) -> str:
    return TONE_GUIDANCE.get((tone or "").lower(), TONE_GUIDANCE["professional"])


def _company_section(research: CompanyResearch | None) -> str:
    if not research:
        return "No specific company research available."

    details = []
    if research.company_name:
        details.append(f"Company: {research.company_name}")
    if research.industry:
        details.append(f"Industry: {research.industry}")
    if research.description:
        details.append(f"About: {research.description}")
    if research.employee_count:
        details.append(f"Size: {research.employee_count} employees")
    if research.location:
        details.append(f"Location: {research.location}")
    if research.technologies:
        details.append(f"Tech Stack: {', '.join(research.technologies)}")

    return "\n".join(details) or "No specific company research available."


def build_email_generation_prompt(
    contact: Contact,
    product: ProductContext,
    research: CompanyResearch | None,
    custom_instructions: str | None = None,
) -> str:
    """Build the user message from contact, cached research and product context."""
    first_name = contact.first_name or "there"
    full_name = contact.full_name or "the recipient"
    company = contact.company or (research.company_name if research else None) or "their company"
    tone = product.tone or "professional"

    prompt = f"""### Task
Write a personalized cold email to {full_name}.

### Recipient
Name: {full_name}
Email: {contact.email}
Title: {contact.title or "professional"}
Company: {company}

### Company Research
{_company_section(research)}

### Your Product
Product Name: {product.product_name}
Description: {product.product_description}
Target Audience: {product.target_audience}
Pain Points We Solve: {product.pain_points}
Value Proposition: {product.value_proposition}

### Tone: {tone}
{get_tone_guidance(tone)}

### Instructions
1. Write a subject line that would make {first_name} want to open the email
2. Open with something specific about {company} or their industry
3. Bridge to how {product.product_name} can help them specifically
4. End with a simple, low-pressure call-to-action
5. Keep the total email under 150 words

Remember: return ONLY valid JSON with "subject" and "body" keys."""

    if custom_instructions:
        prompt += f"\n\n### Additional Instructions\n{custom_instructions}"
    return prompt


_EMBEDDED_JSON_RE = re.compile(r"\{.*\"subject\".*\"body\".*\}", re.DOTALL)
_SUBJECT_RE = re.compile(r"subject[\"\s:]+([^\n\"]+)", re.IGNORECASE)
_BODY_RE = re.compile(r"body[\"\s:]+(.+)", re.IGNORECASE | re.DOTALL)


def _from_mapping(parsed: object) -> tuple[str, str] | None:
    if not isinstance(parsed, dict):
        return None
    subject, body = parsed.get("subject"), parsed.get("body")
    if not isinstance(subject, str) or not isinstance(body, str):
        return None
    if not subject.strip() or not body.strip():
        return None
    return subject.strip(), body.strip()


def parse_email_response(raw: str) -> tuple[str, str]:
    """
    Extract (subject, body) from the model reply.

    Tries strict JSON, then a JSON object embedded in surrounding text,
    then loose "subject: ... body: ..." text.

    Raises:
        EmailParseError: nothing usable was found
    """
    try:
        result = _from_mapping(json.loads(raw))
        if result:
            return result
    except json.JSONDecodeError:
        pass

    logger.warning("Email response was not clean JSON, attempting text extraction")

    match = _EMBEDDED_JSON_RE.search(raw)
    if match:
        try:
            result = _from_mapping(json.loads(match.group(0)))
            if result:
                return result
        except json.JSONDecodeError:
            pass

    subject_match = _SUBJECT_RE.search(raw)
    body_match = _BODY_RE.search(raw)
    if subject_match and body_match:
        subject = subject_match.group(1).strip().strip("\"'")
        body = body_match.group(1).strip().strip("\"'").replace("\\n", "\n")
        if subject and body:
            return subject, body

    raise EmailParseError("Could not parse email from AI response")
