"""Tests for the type template catalogue and installation."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.db.enums import EntityKind
from app.db.models import TeamType
from app.services import team_type_service, type_template_service
from app.services.errors import DependencyError, NotFoundError


def test_seed_default_templates_once(db):
    created = type_template_service.seed_default_templates(db)
    assert created == len(type_template_service.DEFAULT_TEMPLATES)
    assert type_template_service.seed_default_templates(db) == 0

    contacts = type_template_service.list_templates(db, EntityKind.CONTACT)
    assert [t.name for t in contacts] == ["Client", "Lead", "Investor", "Vendor"]
    assert all(t.is_system for t in contacts)


def test_install_templates_is_idempotent(db, team_id):
    type_template_service.seed_default_templates(db)

    installed = type_template_service.install_templates(db, team_id)
    assert len(installed) == len(type_template_service.DEFAULT_TEMPLATES)
    assert type_template_service.install_templates(db, team_id) == []

    types = team_type_service.list_types(db, team_id, entity_kind=EntityKind.COMPANY)
    assert [t.name for t in types] == ["Title Company", "Lender", "Brokerage"]
    assert all(t.template_id is not None for t in types)


def test_install_selected_templates(db, team_id, other_team_id):
    investor = type_template_service.create_template(
        db, entity_kind=EntityKind.CONTACT, name="Investor", icon="PiggyBank", color="green"
    )
    type_template_service.create_template(
        db, entity_kind=EntityKind.CONTACT, name="Lead", icon="UserPlus", color="teal"
    )

    installed = type_template_service.install_templates(db, team_id, [investor.id])
    assert [t.name for t in installed] == ["Investor"]
    assert installed[0].icon == "PiggyBank"

    type_template_service.install_templates(db, other_team_id, [investor.id])
    assert type_template_service.template_usage_counts(db) == {investor.id: 2}


def test_install_unknown_template(db, team_id):
    with pytest.raises(NotFoundError):
        type_template_service.install_templates(db, team_id, [uuid.uuid4()])


def test_installed_copy_is_independent(db, team_id):
    template = type_template_service.create_template(
        db, entity_kind=EntityKind.EMPLOYEE, name="Agent", icon="Briefcase", color="blue"
    )
    (copy,) = type_template_service.install_templates(db, team_id, [template.id])

    type_template_service.update_template(db, template.id, name="Senior Agent")
    db.refresh(copy)
    assert copy.name == "Agent"

    type_template_service.delete_template(db, template.id)
    remaining = db.execute(select(TeamType).where(TeamType.id == copy.id)).scalar_one()
    assert remaining.template_id is None
    assert remaining.name == "Agent"


@pytest.mark.asyncio
async def test_template_api(client: AsyncClient, team_id):
    create = await client.post(
        "/type-templates",
        json={"entity_kind": "company", "name": "Lender", "icon": "Banknote", "color": "green"},
    )
    assert create.status_code == 201, create.text
    template_id = create.json()["id"]
    assert create.json()["usage_count"] == 0

    patch = await client.patch(f"/type-templates/{template_id}", json={"auto_install": False})
    assert patch.status_code == 200
    assert patch.json()["auto_install"] is False

    install = await client.post(
        f"/teams/{team_id}/type-templates/install", json={"template_ids": [template_id]}
    )
    assert install.status_code == 201, install.text
    assert [t["name"] for t in install.json()] == ["Lender"]

    listing = await client.get("/type-templates", params={"entity_kind": "company"})
    assert [(t["id"], t["usage_count"]) for t in listing.json()] == [(template_id, 1)]

    delete = await client.delete(f"/type-templates/{template_id}")
    assert delete.status_code == 204
    missing = await client.patch(f"/type-templates/{template_id}", json={"name": "X"})
    assert missing.status_code == 404


def test_system_templates_cannot_be_deleted(db):
    type_template_service.seed_default_templates(db)
    system = type_template_service.list_templates(db, EntityKind.CONTACT)[0]

    with pytest.raises(DependencyError):
        type_template_service.delete_template(db, system.id)
    assert type_template_service.get_template(db, system.id) is not None


def test_template_name_check_is_advisory(db):
    template = type_template_service.create_template(
        db, entity_kind=EntityKind.CONTACT, name="Investor", icon="PiggyBank", color="green"
    )

    assert type_template_service.is_template_name_unique(db, EntityKind.CONTACT, " Investor ") is False
    assert type_template_service.is_template_name_unique(db, EntityKind.COMPANY, "Investor") is True
    assert type_template_service.is_template_name_unique(
        db, EntityKind.CONTACT, "Investor", exclude_id=template.id
    ) is True


@pytest.mark.asyncio
async def test_system_template_delete_api(client: AsyncClient, db):
    type_template_service.seed_default_templates(db)
    system = type_template_service.list_templates(db, EntityKind.COMPANY)[0]

    resp = await client.delete(f"/type-templates/{system.id}")
    assert resp.status_code == 409
    assert resp.json()["detail"] == "System templates cannot be deleted"

    check = await client.get(
        "/type-templates/name-check", params={"entity_kind": "company", "name": system.name}
    )
    assert check.json() == {"name": system.name, "is_unique": False}
