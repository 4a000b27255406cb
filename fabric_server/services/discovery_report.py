"""Four-section discovery report built from concurrent completions."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fabric_server.config import REPORT_SECTION_MAX_TOKENS
from fabric_server.models import DiscoveryReport
from fabric_server.services.llm import FailureCause, GenerationFailedError
from fabric_server.services.llm.base import check_completion
from fabric_server.services.summarization import SummarizationService

SECTION_PROMPTS = {
    "risk_tolerance": (
        "Based on the following financial planning meeting transcription, extract and "
        "analyze the client's risk tolerance. Focus on:\n"
        "- Their reaction to market volatility scenarios\n"
        "- Past investment experiences\n"
        "- Comfort with potential losses\n"
        "- Risk preference statements\n\n"
        "Provide a concise analysis in 2-3 paragraphs.\n\n"
        "Transcription:\n{transcript}"
    ),
    "fact_find": (
        "Based on the following financial planning meeting transcription, extract key "
        "client facts and KYC (Know Your Customer) information. Include:\n"
        "- Personal details (age, family situation)\n"
        "- Employment and income\n"
        "- Assets and liabilities\n"
        "- Existing protection arrangements\n"
        "- Estate planning documents\n\n"
        "Provide a structured summary in 3-4 paragraphs.\n\n"
        "Transcription:\n{transcript}"
    ),
    "capacity_for_loss": (
        "Based on the following financial planning meeting transcription, analyze the "
        "client's capacity for loss. Consider:\n"
        "- Income stability and sources\n"
        "- Essential vs discretionary expenses\n"
        "- Emergency fund coverage\n"
        "- Impact of investment losses on lifestyle\n"
        "- Time horizon before needing funds\n\n"
        "Provide a detailed assessment in 2-3 paragraphs.\n\n"
        "Transcription:\n{transcript}"
    ),
    "financial_objectives": (
        "Based on the following financial planning meeting transcription, identify and "
        "document the client's financial objectives. Include:\n"
        "- Short-term goals (0-5 years)\n"
        "- Medium-term goals (5-10 years)\n"
        "- Long-term goals (retirement, legacy)\n"
        "- Specific financial targets mentioned\n"
        "- Priority ranking if discussed\n\n"
        "Provide a comprehensive summary in 3-4 paragraphs.\n\n"
        "Transcription:\n{transcript}"
    ),
}


class ReportGenerationError(GenerationFailedError):
    public_message = "Failed to generate discovery report. Please try again."

    def __init__(
        self,
        message: str,
        cause: FailureCause = FailureCause.PROVIDER_ERROR,
        section: Optional[str] = None,
    ) -> None:
        super().__init__(message, cause)
        self.section = section


class DiscoveryReportGenerator:
    def __init__(self, summarization_service: SummarizationService) -> None:
        self._summarization_service = summarization_service
        self._logger = logging.getLogger("fabric.discovery_report")

    def _generate_section(self, section: str, transcript: str) -> str:
        prompt = SECTION_PROMPTS[section].format(transcript=transcript)
        try:
            provider = self._summarization_service.get_provider()
            completion = provider.complete(
                prompt,
                max_tokens=REPORT_SECTION_MAX_TOKENS,
                temperature=0.0,
            )
            return check_completion(completion).strip()
        except GenerationFailedError as exc:
            raise ReportGenerationError(f"{section}: {exc}", exc.cause, section) from exc
        except Exception as exc:
            raise ReportGenerationError(f"{section}: {exc}", section=section) from exc

    async def generate(self, transcript: str) -> DiscoveryReport:
        """Run all four sections concurrently; any failure fails the report."""
        if not transcript.strip():
            raise ReportGenerationError("Transcript is empty", FailureCause.EMPTY_TRANSCRIPT)

        self._logger.info("Generating discovery report (%d sections)", len(SECTION_PROMPTS))
        sections = list(SECTION_PROMPTS)
        try:
            texts = await asyncio.gather(
                *(
                    asyncio.to_thread(self._generate_section, section, transcript)
                    for section in sections
                )
            )
        except ReportGenerationError as exc:
            self._logger.error(
                "Discovery report failed section=%s cause=%s: %s",
                exc.section,
                exc.cause.value,
                exc,
            )
            raise

        report = DiscoveryReport(**dict(zip(sections, texts)))
        self._logger.info("Discovery report generated successfully")
        return report
