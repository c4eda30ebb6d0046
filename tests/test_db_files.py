from __future__ import annotations

import random

import pytest

from archivist.models.exceptions import DataIntegrityError
from archivist.sql.categs.db_categ import find_or_create_category
from archivist.sql.files.db_files import (
    MAX_BATCH_SIZE,
    file_sort_key,
    find_file_by_id,
    find_or_create_file,
    get_files,
    get_files_by_ids,
    search_files,
)
from archivist.sql.folders.db_folders import find_or_create_folder


def _bulk_insert_files(conn, category, count: int) -> list[int]:
    rows = []
    for i in range(count):
        depth = i % 3
        parts = [f"d{depth}"] * depth + [f"File_{(i * 7919) % count:05d}.tif"]
        public = "/".join(parts)
        rows.append((category.id, None, public, f"Vol/{category.name}/{public}", depth))
    conn.raw.executemany(
        "INSERT INTO files (category_id, folder_id, public_path, full_path, depth) VALUES (?, ?, ?, ?, ?)", rows
    )
    return [r[0] for r in conn.raw.execute("SELECT id FROM files ORDER BY id").fetchall()]


def test_get_files_by_ids_batches_and_sorts(conn, project) -> None:
    ids = _bulk_insert_files(conn, project, 2500)
    requested = ids[:]
    random.Random(42).shuffle(requested)
    conn.queries.clear()

    files = get_files_by_ids(conn, requested)

    assert len(files) == 2500
    assert len({f.id for f in files}) == 2500
    assert files == sorted(files, key=file_sort_key)
    assert [f.depth for f in files[:1]] == [0]
    in_queries = [q for q in conn.queries if " IN (" in q]
    assert len(in_queries) == 3
    assert all(q.count("%s") <= MAX_BATCH_SIZE for q in in_queries)
    assert all(f.category == project for f in files)


def test_get_files_by_ids_ignores_missing_and_duplicates(conn, project) -> None:
    ids = _bulk_insert_files(conn, project, 10)

    files = get_files_by_ids(conn, [ids[3], 999_999, ids[3], ids[0]])

    assert sorted(f.id for f in files) == sorted([ids[0], ids[3]])


def test_get_files_by_ids_order_is_not_request_order(conn, project) -> None:
    top = find_or_create_folder(conn, project, None, "2020-01-01")
    deep = find_or_create_file(conn, project, top, "2020-01-01/b.tif", "V/ProjectX/2020-01-01/b.tif")
    upper = find_or_create_file(conn, project, top, "2020-01-01/A.tif", "V/ProjectX/2020-01-01/A.tif")
    shallow = find_or_create_file(conn, project, None, "2020-01-01", "V/ProjectX/2020-01-01")

    files = get_files_by_ids(conn, [deep.id, upper.id, shallow.id])

    assert [f.id for f in files] == [shallow.id, upper.id, deep.id]


def test_get_files_by_ids_empty(conn) -> None:
    assert get_files_by_ids(conn, []) == []
    assert conn.queries == []


def test_find_or_create_file_is_idempotent(conn, project) -> None:
    top = find_or_create_folder(conn, project, None, "2020-01-01")

    first = find_or_create_file(conn, project, top, "2020-01-01/a.tif", "VolA/ProjectX/2020-01-01/a.tif")
    again = find_or_create_file(conn, project, top, "2020-01-01/a.tif", "VolB/ProjectX/2020-01-01/a.tif")

    assert first.id == again.id
    assert again.full_path == "VolA/ProjectX/2020-01-01/a.tif"
    stored = find_file_by_id(conn, first.id)
    assert stored is not None and stored.depth == 1


def test_find_or_create_file_other_folder_conflicts(conn, project) -> None:
    top = find_or_create_folder(conn, project, None, "2020-01-01")
    other = find_or_create_folder(conn, project, None, "2020-01-02")
    find_or_create_file(conn, project, top, "2020-01-01/a.tif", "V/ProjectX/2020-01-01/a.tif")

    with pytest.raises(DataIntegrityError):
        find_or_create_file(conn, project, other, "2020-01-01/a.tif", "V/ProjectX/2020-01-01/a.tif")


def test_get_files_immediate_children_with_total(conn, project) -> None:
    top = find_or_create_folder(conn, project, None, "2020-01-01")
    sub = find_or_create_folder(conn, project, top, "2020-01-01/sub")
    for name in ("c.tif", "A.tif", "b.tif"):
        find_or_create_file(conn, project, top, f"2020-01-01/{name}", f"V/ProjectX/2020-01-01/{name}")
    find_or_create_file(conn, project, sub, "2020-01-01/sub/z.tif", "V/ProjectX/2020-01-01/sub/z.tif")

    page = get_files(conn, project, top, limit=2)

    assert page.total == 3
    assert [f.name for f in page.items] == ["A.tif", "b.tif"]
    assert get_files(conn, project, None).total == 0


def test_search_files_scoped_and_counted(conn, project) -> None:
    other_project = find_or_create_category(conn, "ProjectY")
    top = find_or_create_folder(conn, project, None, "2020-01-01")
    sub = find_or_create_folder(conn, project, top, "2020-01-01/sub")
    sibling = find_or_create_folder(conn, project, None, "2020-01-02")
    find_or_create_file(conn, project, sub, "2020-01-01/sub/scan1.tif", "V/ProjectX/2020-01-01/sub/scan1.tif")
    find_or_create_file(conn, project, top, "2020-01-01/scan2.tif", "V/ProjectX/2020-01-01/scan2.tif")
    find_or_create_file(conn, project, sibling, "2020-01-02/scan3.tif", "V/ProjectX/2020-01-02/scan3.tif")
    find_or_create_file(conn, other_project, None, "2020-01-01/scan4.tif", "V/ProjectY/2020-01-01/scan4.tif")

    one = search_files(conn, project, top, "scan", limit=1)
    many = search_files(conn, project, top, "scan", limit=1000)
    whole = search_files(conn, project, None, "scan")

    assert one.total == many.total == 2
    assert [f.public_path for f in one.items] == ["2020-01-01/scan2.tif"]
    assert [f.public_path for f in many.items] == ["2020-01-01/scan2.tif", "2020-01-01/sub/scan1.tif"]
    assert whole.total == 3
    assert all(f.folder is None for f in many.items)
