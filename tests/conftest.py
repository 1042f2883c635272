from __future__ import annotations

from collections.abc import Generator
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from quotebuilder.main import create_app
from quotebuilder.models.entities import Skill, TeamMember


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def skills() -> list[Skill]:
    return [
        Skill(id="skill-architect", name="Architecte", sell_daily_rate=Decimal("600"), cost_daily_rate=Decimal("300")),
        Skill(id="skill-designer", name="Designer", sell_daily_rate=Decimal("800"), cost_daily_rate=Decimal("400")),
    ]


@pytest.fixture()
def members() -> list[TeamMember]:
    return [
        TeamMember(id="member-anna", display_name="Anna", skill_ids=["skill-architect"]),
        TeamMember(
            id="member-bob",
            display_name="Bob",
            skill_ids=["skill-designer"],
            custom_daily_rate=Decimal("250"),
        ),
    ]

