"""
Human-readable codes for clients and crews.

Client code: {PREFIX}-{NNN}, e.g. "ACME-001", "TECHSTART-002"
Crew code:   {CLIENT_CODE}-{TYPE}-{NNN}, e.g. "ACME-001-SUP-001", "ACME-001-LEAD-001"
"""
from typing import Union
import logging
import re

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew_core.database.models import Clients, Crews
from autocrew_core.schemas.crew_schemas import CrewType, enum_value

logger = logging.getLogger(__name__)

COMPANY_SUFFIXES = re.compile(
    r"\b(Inc|Ltd|Corp|LLC|Limited|Corporation|Company|Co|Solutions|Services)\b\.?",
    re.IGNORECASE,
)
TRAILING_NUMBER = re.compile(r"-(\d+)$")

_ABBREVIATIONS = {
    CrewType.CUSTOMER_SUPPORT.value: "SUP",
    CrewType.LEAD_GENERATION.value: "LEAD",
}


def extract_prefix(company_name: str) -> str:
    """First word of the company name without corporate suffixes, uppercased, max 10 chars."""
    clean = COMPANY_SUFFIXES.sub("", company_name).strip()
    clean = re.sub(r"[^a-zA-Z0-9\s]", "", clean)
    words = clean.split()
    if not words:
        return "CLIENT"
    return words[0][:10].upper()


def get_crew_type_abbreviation(crew_type: Union[CrewType, str]) -> str:
    return _ABBREVIATIONS.get(enum_value(crew_type), "CREW")


def _next_sequence(codes) -> int:
    highest = 0
    for code in codes:
        match = TRAILING_NUMBER.search(code or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


async def generate_client_code(session: AsyncSession, company_name: str) -> str:
    prefix = extract_prefix(company_name)
    result = await session.execute(
        select(Clients.client_code).where(Clients.client_code.like(f"{prefix}-%"))
    )
    return f"{prefix}-{_next_sequence(result.scalars().all()):03d}"


async def generate_crew_code(session: AsyncSession, client_code: str, crew_type: Union[CrewType, str]) -> str:
    """
    Generate the next crew code for a client and crew type.

    Query errors propagate; a fallback code here could collide with an existing crew.
    """
    prefix = f"{client_code}-{get_crew_type_abbreviation(crew_type)}"
    result = await session.execute(
        select(Crews.crew_code).where(
            and_(Crews.client_id == client_code, Crews.type == enum_value(crew_type))
        )
    )
    existing = result.scalars().all()
    logger.debug(f"Found {len(existing)} existing crews for {client_code} {enum_value(crew_type)}")
    return f"{prefix}-{_next_sequence(existing):03d}"


async def is_crew_code_available(session: AsyncSession, crew_code: str) -> bool:
    result = await session.execute(
        select(Crews.crew_code).where(Crews.crew_code == crew_code).limit(1)
    )
    return result.scalars().first() is None
