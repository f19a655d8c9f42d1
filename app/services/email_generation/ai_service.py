"""
AI email generation.

Builds a personalized cold email for one contact from the contact record,
the cached company research for its domain, and the user's product
context. Generation never raises past this module; callers get an
EmailGenerationResult.
"""

import html as html_lib
from typing import Any

import openai
from openai import AsyncOpenAI

from app.config import Settings, settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.email_domain import EmailGenerationResult, GeneratedEmail
from app.repositories.company_research_repository import CompanyResearchRepository
from app.repositories.contact_repository import ContactRepository
from app.repositories.product_context_repository import ProductContextRepository
from app.services.email_generation.prompts import (
    EMAIL_SYSTEM_PROMPT,
    EmailParseError,
    build_email_generation_prompt,
    parse_email_response,
)

logger = get_logger(__name__)


class OpenAIServiceError(Exception):
    """Raised when no model produced a usable completion."""

    def __init__(self, message: str, api_error: str | None = None):
        super().__init__(message)
        self.api_error = api_error


def convert_to_html(text: str) -> str:
    escaped = html_lib.escape(text, quote=False).replace("\n", "<br>\n")
    return (
        '<div style="font-family: Arial, sans-serif; font-size: 14px; '
        f'line-height: 1.6; color: #333;">\n{escaped}\n</div>'
    )


class EmailGenerationService:
    """GPT-backed cold email writer with a single fallback-model retry."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        config: Settings = settings,
        *,
        contact_repository: type[ContactRepository] = ContactRepository,
        research_repository: type[CompanyResearchRepository] = CompanyResearchRepository,
        product_context_repository: type[ProductContextRepository] = ProductContextRepository,
    ):
        self.config = config
        self._client = client
        self.contacts = contact_repository
        self.research = research_repository
        self.product_contexts = product_context_repository

    def is_ready(self) -> bool:
        return self._client is not None or self.config.openai_configured()

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.config.OPENAI_API_KEY,
                timeout=self.config.OPENAI_TIMEOUT_SECONDS,
            )
            logger.info(
                "OpenAI client initialized",
                model=self.config.OPENAI_MODEL,
                timeout=self.config.OPENAI_TIMEOUT_SECONDS,
            )
        return self._client

    async def generate_email(
        self, user_id: str, contact_id: str, custom_instructions: str | None = None
    ) -> EmailGenerationResult:
        if not self.is_ready():
            return EmailGenerationResult(
                success=False, error="OpenAI API key not configured", error_code="NOT_CONFIGURED"
            )

        try:
            contact = await self.contacts.get(user_id, contact_id)
            if not contact:
                return EmailGenerationResult(
                    success=False,
                    error="Contact not found or access denied",
                    error_code="CONTACT_NOT_FOUND",
                )

            research = None
            if contact.company_domain:
                research = await self.research.get(contact.company_domain)

            product = await self.product_contexts.get(user_id)
            if not product:
                return EmailGenerationResult(
                    success=False,
                    error="Product context not set. Please configure your product information first.",
                    error_code="MISSING_PRODUCT_CONTEXT",
                )

            user_prompt = build_email_generation_prompt(
                contact, product, research, custom_instructions
            )

            logger.info(
                "Generating email",
                user_id=user_id,
                contact_id=contact_id,
                has_research=research is not None,
                model=self.config.OPENAI_MODEL,
            )

            raw = await self._complete_with_fallback(EMAIL_SYSTEM_PROMPT, user_prompt)
            subject, body = parse_email_response(raw)

            logger.info("Email generated", contact_id=contact_id, subject=subject)
            return EmailGenerationResult(
                success=True,
                email=GeneratedEmail(
                    subject=subject, body_text=body, body_html=convert_to_html(body)
                ),
            )

        except (OpenAIServiceError, EmailParseError) as e:
            logger.error("Email generation failed", contact_id=contact_id, error=str(e))
            return EmailGenerationResult(
                success=False,
                error=f"Email generation failed: {e}",
                error_code="GENERATION_FAILED",
            )
        except Exception as e:
            logger.error(
                "Unexpected error during email generation",
                contact_id=contact_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return EmailGenerationResult(
                success=False,
                error=f"Email generation failed: {e}",
                error_code="GENERATION_FAILED",
            )

    async def regenerate_email(
        self,
        user_id: str,
        contact_id: str,
        tone: str | None = None,
        focus_on: str | None = None,
    ) -> EmailGenerationResult:
        instructions = []
        if tone:
            instructions.append(f"Use a {tone} tone.")
        if focus_on:
            instructions.append(f"Focus especially on: {focus_on}")

        return await self.generate_email(
            user_id, contact_id, "\n".join(instructions) or None
        )

    async def _complete_with_fallback(self, system_message: str, user_message: str) -> str:
        """Try the primary model, then the fallback model once."""
        try:
            return await self._complete(self.config.OPENAI_MODEL, system_message, user_message)
        except OpenAIServiceError as e:
            fallback = self.config.OPENAI_FALLBACK_MODEL
            if not fallback or fallback == self.config.OPENAI_MODEL:
                raise
            logger.warning(
                "Primary model failed, trying fallback",
                model=self.config.OPENAI_MODEL,
                fallback_model=fallback,
                error=str(e),
            )
            return await self._complete(fallback, system_message, user_message)

    async def _complete(self, model: str, system_message: str, user_message: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_message},
                    {"role": "user", "content": user_message},
                ],
                max_tokens=self.config.OPENAI_MAX_TOKENS,
                temperature=self.config.OPENAI_TEMPERATURE,
                response_format={"type": "json_object"},
            )
        except openai.APIError as e:
            raise OpenAIServiceError(f"OpenAI call failed ({model})", api_error=str(e)) from e

        if not response.choices or not response.choices[0].message.content:
            raise OpenAIServiceError(f"Empty response from OpenAI ({model})")

        content = response.choices[0].message.content.strip()
        logger.debug(
            "OpenAI call successful",
            model=model,
            response_length=len(content),
            usage_tokens=response.usage.total_tokens if response.usage else 0,
        )
        return content

    def status(self) -> dict[str, Any]:
        return {
            "ready": self.is_ready(),
            "model": self.config.OPENAI_MODEL,
            "fallback_model": self.config.OPENAI_FALLBACK_MODEL,
        }


# Singleton instance for application use
email_generation_service = EmailGenerationService()
