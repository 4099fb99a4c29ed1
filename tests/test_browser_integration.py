import uuid

import pytest

from dbadmin.core.browser.errors import (
    PrimaryKeyImmutable,
    RowNotFound,
    StorageError,
    UnknownSortColumn,
    ValidationFailed,
)
from dbadmin.core.browser.metadata import QuerySpec, SortSpec
from dbadmin.core.browser.types import now_millis


async def add_users(browser, count):
    rows = []
    for index in range(count):
        rows.append(
            await browser.insert_row(
                "user", {"name": f"User {index:02d}", "email": f"user{index:02d}@x.com"}
            )
        )
    return rows


@pytest.mark.asyncio
async def test_insert_user_generates_id_and_timestamps(browser):
    before = now_millis()
    row = await browser.insert_row("user", {"email": "a@x.com", "name": "A"})
    after = now_millis()

    assert isinstance(row["id"], str) and row["id"]
    assert before <= row["created_at"] <= after
    assert before <= row["updated_at"] <= after
    # server defaults filled the rest
    assert row["role"] == "user"
    assert row["banned"] is False
    assert row["password"] is None


@pytest.mark.asyncio
async def test_insert_honors_explicit_id(browser):
    row = await browser.insert_row("user", {"id": "fixture-1", "email": "f@x.com", "name": "F"})
    assert row["id"] == "fixture-1"


@pytest.mark.asyncio
async def test_insert_then_list_round_trip(browser):
    inserted = await browser.insert_row("user", {"email": "round@x.com", "name": "Round"})
    await add_users(browser, 3)

    page = await browser.list_rows("user", QuerySpec(filter=inserted["id"]))

    assert page.total == 1
    assert page.rows == [inserted]


@pytest.mark.asyncio
async def test_insert_with_integer_primary_key(browser):
    author = await browser.insert_row("user", {"email": "p@x.com", "name": "P"})

    first = await browser.insert_row(
        "post", {"title": "Hello", "content": "...", "user_id": author["id"]}
    )
    second = await browser.insert_row(
        "post", {"title": "Again", "content": "...", "user_id": author["id"]}
    )

    assert isinstance(first["id"], int)
    assert second["id"] == first["id"] + 1


@pytest.mark.asyncio
@pytest.mark.parametrize("stray", ["field_0", "field_3", "nickname"])
async def test_insert_drops_unknown_keys(browser, stray):
    row = await browser.insert_row(
        "user", {"email": "b@x.com", "name": "B", stray: "junk"}
    )

    assert stray not in row
    assert row["email"] == "b@x.com"
    assert row["email_verified"] is False
    assert row["role"] == "user"


@pytest.mark.asyncio
async def test_insert_missing_required_column(browser):
    with pytest.raises(ValidationFailed) as exc_info:
        await browser.insert_row("user", {"name": "No Email"})

    assert exc_info.value.column == "email"


@pytest.mark.asyncio
async def test_unique_violation_is_a_storage_error(browser):
    await browser.insert_row("user", {"email": "dup@x.com", "name": "A"})

    with pytest.raises(StorageError) as exc_info:
        await browser.insert_row("user", {"email": "dup@x.com", "name": "B"})

    assert "UNIQUE" in exc_info.value.message


@pytest.mark.asyncio
async def test_json_column_round_trip(browser):
    row = await browser.insert_row(
        "app_settings", {"key": "theme", "value": {"dark": True, "accent": "teal"}}
    )

    assert row["value"] == {"dark": True, "accent": "teal"}

    page = await browser.list_rows("app_settings")
    assert page.rows == [row]


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_second_page_of_fifteen(browser):
    await add_users(browser, 15)

    page = await browser.list_rows("user", QuerySpec(page=2, limit=10))

    assert len(page.rows) == 5
    assert page.total == 15
    assert page.total_pages == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 4, 7, 23])
async def test_pages_cover_every_row_once(browser, limit):
    users = await add_users(browser, 23)

    first = await browser.list_rows("user", QuerySpec(limit=limit, sort=SortSpec(column="email")))
    seen = []
    for page_number in range(1, first.total_pages + 1):
        page = await browser.list_rows(
            "user", QuerySpec(page=page_number, limit=limit, sort=SortSpec(column="email"))
        )
        expected = limit if page_number < first.total_pages else 23 - limit * (first.total_pages - 1)
        assert len(page.rows) == expected
        seen += [row["id"] for row in page.rows]

    assert sorted(seen) == sorted(row["id"] for row in users)


@pytest.mark.asyncio
async def test_sorting(browser):
    await add_users(browser, 5)

    ascending = await browser.list_rows("user", QuerySpec(sort=SortSpec(column="name")))
    descending = await browser.list_rows(
        "user", QuerySpec(sort=SortSpec(column="name", direction="desc"))
    )

    names = [row["name"] for row in ascending.rows]
    assert names == sorted(names)
    assert [row["name"] for row in descending.rows] == names[::-1]


@pytest.mark.asyncio
async def test_unknown_sort_column(browser):
    with pytest.raises(UnknownSortColumn):
        await browser.list_rows("user", QuerySpec(sort=SortSpec(column="nope")))


@pytest.mark.asyncio
async def test_filter_matches_any_text_column(browser):
    await add_users(browser, 12)

    by_name = await browser.list_rows("user", QuerySpec(filter="User 1"))
    by_email = await browser.list_rows("user", QuerySpec(filter="user03@"))

    # User 10, User 11; emails have no space so "user1x@" does not match
    assert by_name.total == 2
    assert by_email.total == 1


@pytest.mark.asyncio
async def test_filter_wildcards_are_literal(browser):
    await browser.insert_row("user", {"email": "pct@x.com", "name": "100% real"})
    await browser.insert_row("user", {"email": "other@x.com", "name": "1000 real"})

    page = await browser.list_rows("user", QuerySpec(filter="100%"))

    assert [row["name"] for row in page.rows] == ["100% real"]


@pytest.mark.asyncio
@pytest.mark.parametrize("blank", ["", "   "])
async def test_blank_filter_matches_everything(browser, blank):
    await add_users(browser, 4)

    unfiltered = await browser.list_rows("user", QuerySpec(sort=SortSpec(column="email")))
    filtered = await browser.list_rows(
        "user", QuerySpec(filter=blank, sort=SortSpec(column="email"))
    )

    assert filtered.total == unfiltered.total == 4
    assert filtered.rows == unfiltered.rows


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_update_row_keeps_primary_key(browser):
    row = await browser.insert_row("user", {"email": "k@x.com", "name": "K"})

    updated = await browser.update_row(
        "user", row["id"], {"id": "stolen", "name": "Kay", "banned": True}
    )

    assert updated["id"] == row["id"]
    assert updated["name"] == "Kay"
    assert updated["banned"] is True
    assert updated["updated_at"] >= row["updated_at"]
    assert updated["created_at"] == row["created_at"]


@pytest.mark.asyncio
async def test_update_cell(browser):
    row = await browser.insert_row("user", {"email": "c@x.com", "name": "C"})

    updated = await browser.update_cell("user", row["id"], "role", "admin")

    assert updated["role"] == "admin"
    assert updated["id"] == row["id"]


@pytest.mark.asyncio
async def test_update_cell_primary_key(browser):
    await browser.insert_row("user", {"id": "u1", "email": "u1@x.com", "name": "U"})

    with pytest.raises(PrimaryKeyImmutable):
        await browser.update_cell("user", "u1", "id", "u2")


@pytest.mark.asyncio
async def test_update_cell_rejects_null_in_required_column(browser):
    row = await browser.insert_row("user", {"email": "n@x.com", "name": "N"})

    with pytest.raises(ValidationFailed):
        await browser.update_cell("user", row["id"], "email", None)


@pytest.mark.asyncio
async def test_update_missing_row(browser):
    with pytest.raises(RowNotFound):
        await browser.update_row("user", str(uuid.uuid4()), {"name": "Nobody"})


@pytest.mark.asyncio
async def test_update_post_by_integer_id_from_url(browser):
    author = await browser.insert_row("user", {"email": "a@x.com", "name": "A"})
    post = await browser.insert_row(
        "post", {"title": "Draft", "content": "...", "user_id": author["id"]}
    )

    updated = await browser.update_cell("post", str(post["id"]), "title", "Final")

    assert updated["title"] == "Final"


@pytest.mark.asyncio
async def test_delete_row(browser):
    row = await browser.insert_row("user", {"email": "d@x.com", "name": "D"})

    await browser.delete_row("user", row["id"])

    page = await browser.list_rows("user")
    assert page.total == 0


@pytest.mark.asyncio
async def test_delete_nonexistent_row(browser):
    with pytest.raises(RowNotFound):
        await browser.delete_row("user", "nonexistent")


@pytest.mark.asyncio
async def test_list_tables_counts_rows(browser):
    await add_users(browser, 2)

    tables = {info.name: info.row_count for info in await browser.list_tables()}

    assert tables["user"] == 2
    assert tables["post"] == 0
