"""API contract tests for type-scoped custom fields."""

import uuid

import pytest
from httpx import AsyncClient


async def _create_type(client: AsyncClient, team_id, name="Investor", entity_kind="contact") -> dict:
    resp = await client.post(f"/teams/{team_id}/types", json={"entity_kind": entity_kind, "name": name})
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_custom_field_crud(client: AsyncClient, team_id):
    team_type = await _create_type(client, team_id)
    base = f"/teams/{team_id}/types/{team_type['id']}/fields"

    create_resp = await client.post(
        base,
        json={"name": "Risk Profile", "field_kind": "dropdown", "options": ["Low", "High", "Low"]},
    )
    assert create_resp.status_code == 201, create_resp.text
    created = create_resp.json()
    field_id = created["id"]
    assert created["options"] == ["Low", "High"]
    assert created["type_id"] == team_type["id"]

    list_resp = await client.get(base)
    assert list_resp.status_code == 200, list_resp.text
    assert [f["id"] for f in list_resp.json()] == [field_id]

    get_resp = await client.get(f"/teams/{team_id}/custom-fields/{field_id}")
    assert get_resp.status_code == 200, get_resp.text

    patch_resp = await client.patch(
        f"/teams/{team_id}/custom-fields/{field_id}",
        json={"name": "Risk Appetite", "is_required": True},
    )
    assert patch_resp.status_code == 200, patch_resp.text
    assert patch_resp.json()["name"] == "Risk Appetite"
    assert patch_resp.json()["options"] == ["Low", "High"]

    delete_resp = await client.delete(f"/teams/{team_id}/custom-fields/{field_id}")
    assert delete_resp.status_code == 200, delete_resp.text
    assert delete_resp.json() == {"field_id": field_id, "values_removed": 0}

    missing_resp = await client.get(f"/teams/{team_id}/custom-fields/{field_id}")
    assert missing_resp.status_code == 404


@pytest.mark.asyncio
async def test_create_field_validation(client: AsyncClient, team_id):
    team_type = await _create_type(client, team_id)
    base = f"/teams/{team_id}/types/{team_type['id']}/fields"

    resp = await client.post(base, json={"name": "Stars", "field_kind": "rating"})
    assert resp.status_code == 422

    resp = await client.post(
        base, json={"name": "Tier", "field_kind": "dropdown", "options": [], "require_options": True}
    )
    assert resp.status_code == 422, resp.text
    body = resp.json()
    assert "options" in body["errors"]


@pytest.mark.asyncio
async def test_fields_for_unknown_type(client: AsyncClient, team_id):
    resp = await client.get(f"/teams/{team_id}/types/{uuid.uuid4()}/fields")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_fields_are_team_scoped(client: AsyncClient, team_id, other_team_id):
    team_type = await _create_type(client, team_id)
    created = await client.post(
        f"/teams/{team_id}/types/{team_type['id']}/fields",
        json={"name": "Net Worth", "field_kind": "currency"},
    )
    field_id = created.json()["id"]

    resp = await client.get(f"/teams/{other_team_id}/custom-fields/{field_id}")
    assert resp.status_code == 404
    resp = await client.get(f"/teams/{other_team_id}/types/{team_type['id']}/fields")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_reorder_fields(client: AsyncClient, team_id):
    team_type = await _create_type(client, team_id)
    base = f"/teams/{team_id}/types/{team_type['id']}/fields"
    ids = []
    for name in ("A", "B", "C"):
        resp = await client.post(base, json={"name": name, "field_kind": "text"})
        ids.append(resp.json()["id"])

    resp = await client.put(f"{base}/order", json={"field_ids": [ids[2], ids[0], ids[1]]})
    assert resp.status_code == 200, resp.text
    assert [f["name"] for f in resp.json()] == ["C", "A", "B"]

    resp = await client.put(f"{base}/order", json={"field_ids": [ids[0]]})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_add_option(client: AsyncClient, team_id):
    team_type = await _create_type(client, team_id)
    created = await client.post(
        f"/teams/{team_id}/types/{team_type['id']}/fields",
        json={"name": "Tier", "field_kind": "multi_select"},
    )
    field_id = created.json()["id"]
    url = f"/teams/{team_id}/custom-fields/{field_id}/options"

    first = await client.post(url, json={"option": "Gold"})
    second = await client.post(url, json={"option": "Gold"})

    assert first.status_code == 200, first.text
    assert first.json()["options"] == ["Gold"]
    assert second.json()["options"] == ["Gold"]


@pytest.mark.asyncio
async def test_mutations_require_csrf_header(bare_client: AsyncClient, team_id):
    resp = await bare_client.post(
        f"/teams/{team_id}/types", json={"entity_kind": "contact", "name": "Investor"}
    )
    assert resp.status_code == 403

    resp = await bare_client.get(f"/teams/{team_id}/types")
    assert resp.status_code == 200
