"""
Test Data Factories
"""

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bluecarbon.models.mint import CreditSource, MintAttempt, MintOutcome
from bluecarbon.models.profile import Profile, UserRole
from bluecarbon.models.project import Project, ProjectStatus

OWNER_WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
OTHER_WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
SYSTEM_ACCOUNT = "11111111111111111111111111111112"


def reference_measurement(**overrides: Any) -> Dict[str, Any]:
    """1000 Mg C/ha of soil carbon and nothing else: 3670 credits per hectare"""
    data = {
        "bulk_density": 1,
        "depth": 1,
        "carbon_percent": 10,
        "agb_biomass": 0,
        "bgb_biomass": 0,
        "carbon_fraction": 0.47,
        "ch4_flux": 0,
        "n2o_flux": 0,
        "baseline_carbon_stock": 0,
        "uncertainty_deduction": 0,
    }
    data.update(overrides)
    return data


def mangrove_measurement() -> Dict[str, Any]:
    """Field-realistic values with emissions and a baseline"""
    return {
        "bulk_density": 0.8,
        "depth": 1.0,
        "carbon_percent": 4.5,
        "agb_biomass": 150,
        "bgb_biomass": 60,
        "ch4_flux": 12.5,
        "n2o_flux": 0.8,
        "baseline_carbon_stock": 120,
    }


async def create_profile(
    session: AsyncSession,
    user_id: str,
    role: UserRole = UserRole.USER,
    wallet_address: Optional[str] = None
) -> Profile:
    profile = Profile(id=user_id, email=f"{user_id}@example.org", role=role, wallet_address=wallet_address)
    session.add(profile)
    await session.commit()
    return profile


async def create_project(session: AsyncSession, **overrides: Any) -> Project:
    fields = {
        "title": "Mangrove restoration, Gazi Bay",
        "ecosystem_type": "mangrove",
        "project_area": 10.0,
        "carbon_data": reference_measurement(),
        "wallet_address": OWNER_WALLET,
        "owner_id": "owner-1",
        "status": ProjectStatus.APPROVED,
    }
    fields.update(overrides)
    project = Project(**fields)
    session.add(project)
    await session.commit()
    await session.refresh(project)
    return project


async def create_attempt(
    session: AsyncSession,
    project_id: int,
    outcome: MintOutcome,
    **overrides: Any
) -> MintAttempt:
    fields = {
        "project_id": project_id,
        "outcome": outcome,
        "requested_amount": "36700",
        "credit_source": CreditSource.CALCULATED,
        "recipient_wallet": OWNER_WALLET,
        "requested_by": "admin-1",
    }
    if outcome == MintOutcome.UNRECORDED:
        fields.update(
            amount_issued=36700,
            transaction_id="5txOnLedger",
            mint_id="CCRMintOnLedger",
            error_kind="minted_but_unrecorded",
        )
    fields.update(overrides)
    attempt = MintAttempt(**fields)
    session.add(attempt)
    await session.commit()
    await session.refresh(attempt)
    return attempt
