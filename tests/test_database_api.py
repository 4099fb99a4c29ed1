import pytest
from httpx import AsyncClient

BASE = "/admin/database/tables"


async def add_setting(client: AsyncClient, headers, key: str, value=None):
    response = await client.post(
        f"{BASE}/app_settings/rows",
        json={"data": {"key": key, "value": value, "description": f"{key} setting"}},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


# =========================
# Access
# =========================


@pytest.mark.asyncio
async def test_requires_token(client: AsyncClient):
    response = await client.get(BASE)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_requires_admin(client: AsyncClient, auth_headers_user):
    response = await client.get(BASE, headers=auth_headers_user)
    assert response.status_code == 403


# =========================
# Schema
# =========================


@pytest.mark.asyncio
async def test_list_tables(client: AsyncClient, auth_headers_admin):
    response = await client.get(BASE, headers=auth_headers_admin)

    assert response.status_code == 200
    tables = {table["name"]: table["row_count"] for table in response.json()}
    # the admin fixture is the only user
    assert tables["user"] == 1
    assert tables["app_settings"] == 0


@pytest.mark.asyncio
async def test_table_metadata(client: AsyncClient, auth_headers_admin):
    response = await client.get(f"{BASE}/user", headers=auth_headers_admin)

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "user"
    columns = {column["name"]: column for column in data["columns"]}
    assert columns["id"]["is_primary_key"] is True
    assert columns["email"]["canonical_type"] == "text"
    assert columns["created_at"]["canonical_type"] == "timestamp"
    assert columns["banned"]["canonical_type"] == "boolean"


@pytest.mark.asyncio
async def test_missing_table(client: AsyncClient, auth_headers_admin):
    response = await client.get(f"{BASE}/nonexistent_table", headers=auth_headers_admin)

    assert response.status_code == 404
    assert response.json()["detail"] == 'Table "nonexistent_table" not found'


@pytest.mark.asyncio
async def test_rows_of_missing_table(client: AsyncClient, auth_headers_admin):
    response = await client.get(
        f"{BASE}/nonexistent_table/rows", headers=auth_headers_admin
    )
    assert response.status_code == 404


# =========================
# Rows
# =========================


@pytest.mark.asyncio
async def test_insert_and_list_rows(client: AsyncClient, auth_headers_admin):
    created = await add_setting(client, auth_headers_admin, "theme", {"dark": True})

    assert created["key"] == "theme"
    assert created["value"] == {"dark": True}
    assert isinstance(created["updated_at"], int)

    response = await client.get(
        f"{BASE}/app_settings/rows",
        params={"filter": "theme"},
        headers=auth_headers_admin,
    )
    assert response.status_code == 200
    page = response.json()
    assert page["total"] == 1
    assert page["total_pages"] == 1
    assert page["rows"] == [created]


@pytest.mark.asyncio
async def test_list_rows_paging_and_sort(client: AsyncClient, auth_headers_admin):
    for index in range(12):
        await add_setting(client, auth_headers_admin, f"key{index:02d}")

    response = await client.get(
        f"{BASE}/app_settings/rows",
        params={"page": 2, "limit": 5, "sort": "key", "direction": "desc"},
        headers=auth_headers_admin,
    )

    page = response.json()
    assert page["total"] == 12
    assert page["total_pages"] == 3
    assert [row["key"] for row in page["rows"]] == [
        "key06", "key05", "key04", "key03", "key02"
    ]


@pytest.mark.asyncio
async def test_list_rows_bad_sort(client: AsyncClient, auth_headers_admin):
    response = await client.get(
        f"{BASE}/user/rows", params={"sort": "nope"}, headers=auth_headers_admin
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_rows_limit_out_of_range(client: AsyncClient, auth_headers_admin):
    response = await client.get(
        f"{BASE}/user/rows", params={"limit": 500}, headers=auth_headers_admin
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_insert_user_row(client: AsyncClient, auth_headers_admin):
    response = await client.post(
        f"{BASE}/user/rows",
        json={"data": {"email": "row@example.com", "name": "Row"}},
        headers=auth_headers_admin,
    )

    assert response.status_code == 201
    row = response.json()
    assert row["id"]
    assert row["created_at"] == row["updated_at"]
    assert row["role"] == "user"


@pytest.mark.asyncio
async def test_insert_invalid_value(client: AsyncClient, auth_headers_admin):
    response = await client.post(
        f"{BASE}/user/rows",
        json={"data": {"email": "bad@example.com", "name": "Bad", "banned": "maybe"}},
        headers=auth_headers_admin,
    )

    assert response.status_code == 422
    assert 'column "banned"' in response.json()["detail"]


@pytest.mark.asyncio
async def test_insert_duplicate_key(client: AsyncClient, auth_headers_admin):
    await add_setting(client, auth_headers_admin, "dup")

    response = await client.post(
        f"{BASE}/app_settings/rows",
        json={"data": {"key": "dup"}},
        headers=auth_headers_admin,
    )
    assert response.status_code == 500


@pytest.mark.asyncio
async def test_update_row(client: AsyncClient, auth_headers_admin):
    await add_setting(client, auth_headers_admin, "limits", {"max": 1})

    response = await client.patch(
        f"{BASE}/app_settings/rows/limits",
        json={"data": {"value": {"max": 5}, "description": "raised"}},
        headers=auth_headers_admin,
    )

    assert response.status_code == 200
    row = response.json()
    assert row["key"] == "limits"
    assert row["value"] == {"max": 5}
    assert row["description"] == "raised"


@pytest.mark.asyncio
async def test_update_row_unknown_column(client: AsyncClient, auth_headers_admin):
    await add_setting(client, auth_headers_admin, "x")

    response = await client.patch(
        f"{BASE}/app_settings/rows/x",
        json={"data": {"nope": 1}},
        headers=auth_headers_admin,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_missing_row(client: AsyncClient, auth_headers_admin):
    response = await client.patch(
        f"{BASE}/app_settings/rows/ghost",
        json={"data": {"description": "x"}},
        headers=auth_headers_admin,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_cell(client: AsyncClient, auth_headers_admin, test_admin):
    response = await client.patch(
        f"{BASE}/user/rows/{test_admin.id}/cells/name",
        json={"value": "Renamed"},
        headers=auth_headers_admin,
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"


@pytest.mark.asyncio
async def test_update_primary_key_cell(client: AsyncClient, auth_headers_admin, test_admin):
    response = await client.patch(
        f"{BASE}/user/rows/{test_admin.id}/cells/id",
        json={"value": "new-id"},
        headers=auth_headers_admin,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_row(client: AsyncClient, auth_headers_admin):
    await add_setting(client, auth_headers_admin, "gone")

    response = await client.delete(
        f"{BASE}/app_settings/rows/gone", headers=auth_headers_admin
    )
    assert response.status_code == 200

    listing = await client.get(f"{BASE}/app_settings/rows", headers=auth_headers_admin)
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_delete_missing_row(client: AsyncClient, auth_headers_admin):
    response = await client.delete(
        f"{BASE}/app_settings/rows/ghost", headers=auth_headers_admin
    )
    assert response.status_code == 404
