"""
AI project summary via Gemini.
"""

import time
import logging

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from . import config

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
INITIAL_BACKOFF_SECONDS = 1.0

SUMMARY_PROMPT = (
    "Summarize this project data: Budget {budget} MYR, Paid {paid} MYR. "
    "Deliverables {approved}/{total} approved. Milestones at risk: {at_risk}. "
    "Overdue payments: {overdue}. Focus on key risks and progress."
)


class SummaryError(Exception):
    """Gemini did not return a summary."""


def build_prompt(kpis):
    kpis = kpis or {}

    def num(key):
        value = kpis.get(key) or 0
        return f"{value:,.2f}" if isinstance(value, float) else value

    try:
        overdue = float(kpis.get('totalOverdueMYR') or 0) > 0
    except (TypeError, ValueError):
        overdue = False

    return SUMMARY_PROMPT.format(
        budget=num('budgetMYR'),
        paid=num('paidMYR'),
        approved=num('deliverablesApproved'),
        total=num('deliverablesTotal'),
        at_risk=num('milestonesAtRisk'),
        overdue='Yes' if overdue else 'No',
    )


def _generate(prompt):
    genai.configure(api_key=config.GEMINI_API_KEY)
    model = genai.GenerativeModel(config.GEMINI_MODEL)
    response = model.generate_content(prompt)
    try:
        return response.text or ''
    except ValueError as e:
        # .text raises when the prompt was blocked and no candidate came back
        logger.error(f"Gemini returned no summary: {e}")
        raise SummaryError(f"Gemini returned no summary: {e}") from e


def summarize(kpis):
    """
    Ask Gemini for a short summary of the dashboard KPIs.

    Retries up to 3 attempts on 503 (service unavailable) with exponential backoff
    starting at 1s. Any other error, or exhausting the attempts, raises SummaryError.
    """
    if not config.GEMINI_API_KEY:
        raise config.ConfigurationError('GEMINI_API_KEY is not configured.')

    prompt = build_prompt(kpis)
    delay = INITIAL_BACKOFF_SECONDS

    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            summary = _generate(prompt)
            logger.info(f"Gemini summary generated on attempt {attempt}")
            return summary
        except google_exceptions.ServiceUnavailable as e:
            logger.warning(f"Gemini unavailable (attempt {attempt}/{MAX_ATTEMPTS}): {e}")
            if attempt == MAX_ATTEMPTS:
                break
            time.sleep(delay)
            delay *= 2
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Gemini API error: {e}")
            raise SummaryError(f"Gemini API error: {e}") from e

    raise SummaryError('Gemini API is unavailable after multiple retries.')
