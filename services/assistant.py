"""Customer-facing Q&A over a provider's business details, backed by the OpenAI chat API."""
import logging
from typing import Optional

import httpx
from flask import current_app

from models.provider import Provider
from models.service import Service
from services.availability import format_hhmm, get_weekly_availability
from services.business_info import format_faqs, get_business_info, list_faqs
from services.errors import AssistantError, AssistantUnavailable

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def format_business_hours(slots) -> Optional[str]:
    by_day = {}
    for slot in slots:
        if not slot.is_available:
            continue
        by_day.setdefault(slot.day_of_week, []).append(
            f"{format_hhmm(slot.start_time)} - {format_hhmm(slot.end_time)}"
        )
    if not by_day:
        return None
    return "\n".join(f"{DAY_NAMES[d]}: {', '.join(ranges)}" for d, ranges in sorted(by_day.items()))


def build_business_context(provider: Provider) -> str:
    lines = ["Business Information:", f"Business Name: {provider.business_name}"]
    if provider.description:
        lines.append(f"Description: {provider.description}")
    if provider.phone:
        lines.append(f"Phone: {provider.phone}")
    if provider.address:
        lines.append(f"Address: {provider.address}")

    info = get_business_info(provider.id)
    hours = format_business_hours(get_weekly_availability(provider.id))
    if not hours and info is not None:
        hours = info.business_hours
    if hours:
        lines.append("Business Hours:")
        lines.append(hours)
    if info is not None:
        if info.location_details:
            lines.append(f"Location Details: {info.location_details}")
        if info.policies:
            lines.append(f"Policies: {info.policies}")
        if info.other_info:
            lines.append(f"Additional Information: {info.other_info}")

    services = (
        Service.query
        .filter_by(provider_id=provider.id, is_active=True)
        .order_by(Service.id.asc())
        .all()
    )
    if services:
        lines.append("")
        lines.append("Available Services:")
        for i, s in enumerate(services, start=1):
            entry = f"{i}. {s.title}"
            if s.description:
                entry += f" - {s.description}"
            entry += f" - ${s.price / 100:.2f}"
            if s.duration_minutes:
                entry += f" ({s.duration_minutes} minutes)"
            lines.append(entry)

    faqs = format_faqs(list_faqs(provider.id, active_only=True))
    if faqs:
        lines.append("")
        lines.append(faqs)

    return "\n".join(lines)


def ask(question: str, provider: Provider, client: Optional[httpx.Client] = None) -> str:
    api_key = current_app.config.get("OPENAI_API_KEY")
    if not api_key:
        raise AssistantUnavailable("AI service is not available. OpenAI API key is not configured.")

    system_prompt = (
        f"You are a helpful assistant for {provider.business_name}. "
        "Answer customer questions briefly using only the business information below. "
        "If the answer is not in it, say so and suggest contacting the business.\n\n"
        + build_business_context(provider)
    )
    payload = {
        "model": current_app.config.get("OPENAI_MODEL", "gpt-3.5-turbo"),
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": question},
        ],
        "max_tokens": 500,
        "temperature": 0.7,
    }

    own_client = client is None
    if own_client:
        client = httpx.Client(timeout=current_app.config.get("OPENAI_TIMEOUT_SECONDS", 30))
    try:
        response = client.post(
            OPENAI_CHAT_URL,
            json=payload,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        response.raise_for_status()
        data = response.json()
        return data["choices"][0]["message"]["content"].strip()
    except httpx.HTTPStatusError as exc:
        logger.error("OpenAI API returned %s for provider %s", exc.response.status_code, provider.id)
        raise AssistantError("AI service temporarily unavailable. Please try again later.") from exc
    except (httpx.HTTPError, KeyError, IndexError, ValueError) as exc:
        logger.error("OpenAI API call failed for provider %s: %s", provider.id, exc)
        raise AssistantError("AI service temporarily unavailable. Please try again later.") from exc
    finally:
        if own_client:
            client.close()
