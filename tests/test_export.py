import csv
import json
from datetime import date

import pandas as pd
import pytest

from catalog_harvest.export.archive import JsonArchive, read_archived_entry
from catalog_harvest.export.summary import (
    SUMMARY_HEADER,
    SummaryWriter,
    compare_summaries,
    load_summary,
    summary_path,
)
from catalog_harvest.ingest.models import Entry, Page, ValueSetResource
from catalog_harvest.processing.text import collapse_line_breaks, safe_filename
from helpers import BASE_URL, make_page


def acme_entry():
    return Entry.model_validate(
        {
            "fullUrl": f"{BASE_URL}2.16.840.1.114222",
            "resource": {
                "resourceType": "ValueSet",
                "id": "2.16.840.1.114222",
                "name": "PHVS_AcmeCodes",
                "title": "Acme codes",
                "publisher": "Acme\r\nLabs",
                "date": "2021-03-04T00:00:00",
                "status": "active",
                "compose": {"include": [{"concept": [{"code": "A", "display": "Alpha"}]}]},
                "extension": [{"url": "urn:x", "valueString": "kept"}],
            },
        }
    )


def test_collapse_line_breaks():
    assert collapse_line_breaks("Acme\r\nLabs") == "Acme Labs"
    assert collapse_line_breaks("  Acme\nLabs\rInc  ") == "Acme Labs Inc"
    assert collapse_line_breaks("") == ""


def test_safe_filename():
    assert safe_filename("PHVS_Gender") == "PHVS_Gender"
    assert safe_filename("a/b\\c") == "a_b_c"
    assert safe_filename("  ", fallback="2.16") == "2.16"


def test_archive_round_trip(tmp_path):
    archive = JsonArchive(tmp_path / "valuesets")
    entry = acme_entry()

    path = archive.write_entry(entry)

    assert path == tmp_path / "valuesets" / "PHVS_AcmeCodes.json"
    restored = read_archived_entry(path).resource
    assert restored.id == "2.16.840.1.114222"
    assert restored.name == "PHVS_AcmeCodes"
    assert restored.title == "Acme codes"
    assert collapse_line_breaks(restored.publisher) == "Acme Labs"
    assert restored.date == "2021-03-04T00:00:00"


def test_archive_stores_payload_verbatim(tmp_path):
    archive = JsonArchive(tmp_path)
    entry = acme_entry()

    path = archive.write_entry(entry)

    with path.open(encoding="utf-8") as f:
        stored = json.load(f)
    assert stored["fullUrl"] == f"{BASE_URL}2.16.840.1.114222"
    assert stored["resource"]["extension"] == [{"url": "urn:x", "valueString": "kept"}]
    assert stored["resource"]["compose"]["include"][0]["concept"][0]["code"] == "A"
    assert "lockedDate" not in stored["resource"]["compose"]


def test_archive_writes_every_entry_of_a_page(tmp_path):
    archive = JsonArchive(tmp_path / "out" / "valuesets")

    archive.write_page(make_page(["a", "b", "c"]))

    assert sorted(p.name for p in (tmp_path / "out" / "valuesets").iterdir()) == [
        "VS_a.json",
        "VS_b.json",
        "VS_c.json",
    ]
    assert archive.documents_written == 3


def test_archive_falls_back_to_id_for_nameless_records(tmp_path):
    archive = JsonArchive(tmp_path)
    entry = Entry(resource=ValueSetResource(id="2.16.99"))

    assert archive.write_entry(entry).name == "2.16.99.json"


def test_summary_path_is_dated(tmp_path):
    assert summary_path(tmp_path, date(2024, 2, 9)) == tmp_path / "results-2024-02-09.csv"


def test_summary_rows(tmp_path):
    path = tmp_path / "results.csv"
    page = Page(entry=[acme_entry()])

    with SummaryWriter(path, base_url=BASE_URL) as writer:
        writer.write_page(page)
        writer.write_page(make_page(["b"]))

    assert writer.rows_written == 2
    with path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == SUMMARY_HEADER
    assert rows[1] == [
        f"{BASE_URL}2.16.840.1.114222",
        "2.16.840.1.114222",
        "PHVS_AcmeCodes",
        "Acme codes",
        "Acme Labs",
        "2021-03-04T00:00:00",
    ]
    assert rows[2][:2] == [f"{BASE_URL}b", "b"]


def test_summary_writer_must_be_open(tmp_path):
    writer = SummaryWriter(tmp_path / "results.csv", base_url=BASE_URL)

    with pytest.raises(RuntimeError):
        writer.write_page(make_page(["a"]))


def _summary(rows):
    return pd.DataFrame(
        [[f"{BASE_URL}{r[0]}", *r] for r in rows],
        columns=SUMMARY_HEADER,
    )


def test_compare_summaries():
    old = _summary(
        [
            ["a", "VS_a", "A", "CDC", "2020"],
            ["b", "VS_b", "B", "CDC", "2020"],
            ["c", "VS_c", "C", "CDC", "2020"],
        ]
    )
    new = _summary(
        [
            ["a", "VS_a", "A", "CDC", "2020"],
            ["c", "VS_c", "C", "CDC NCHS", "2022"],
            ["d", "VS_d", "D", "CDC", "2022"],
        ]
    )

    diff = compare_summaries(old, new)

    assert diff.added == ["d"]
    assert diff.removed == ["b"]
    assert diff.changed == ["c"]
    assert not diff.is_empty


def test_load_summary_round_trip(tmp_path):
    path = tmp_path / "results.csv"
    with SummaryWriter(path, base_url=BASE_URL) as writer:
        writer.write_page(make_page(["001", "002"]))

    df = load_summary(path)

    # ids stay text, leading zeros intact
    assert df["id"].tolist() == ["001", "002"]
    assert compare_summaries(df, df).is_empty


def test_load_summary_rejects_other_csv(tmp_path):
    path = tmp_path / "other.csv"
    path.write_text("a,b\n1,2\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_summary(path)
