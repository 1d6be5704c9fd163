import csv
import json

import pytest
from telethon.tl.types import ChannelParticipant, ChannelParticipantCreator, ChatAdminRights

from errors import ValidationError
from export import MemberRecord, export_path, write_csv, write_json, write_records
from fakes import NOW, make_user

HEADER = ["ID", "Username", "FirstName", "LastName", "Phone", "IsBot", "ParticipantStatus"]


@pytest.fixture
def records():
    return [
        MemberRecord.from_participant(
            ChannelParticipantCreator(user_id=1, admin_rights=ChatAdminRights()),
            make_user(1, username="owner", first_name="Ann", last_name="Lee", phone="15550001"),
        ),
        MemberRecord.from_participant(
            ChannelParticipant(user_id=2, date=NOW),
            make_user(2, first_name="Émile", bot=True),
        ),
    ]


def test_record_fields(records):
    owner, bot = records
    assert owner.id == "1"
    assert owner.status == "Creator"
    assert bot.username == "N/A"
    assert bot.last_name == "N/A"
    assert bot.phone == "N/A"
    assert bot.is_bot is True
    assert bot.status == "Member"


def test_csv_header_is_exact(records, tmp_path):
    path = tmp_path / "members.csv"
    write_csv(records, path)
    with open(path, encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == HEADER
    assert len(rows) == 3


def test_csv_and_json_hold_the_same_records(records, tmp_path):
    write_csv(records, tmp_path / "m.csv")
    write_json(records, tmp_path / "m.json")

    with open(tmp_path / "m.csv", encoding="utf-8", newline="") as f:
        from_csv = [
            (r["ID"], r["Username"], r["FirstName"], r["LastName"], r["Phone"], r["IsBot"] == "True", r["ParticipantStatus"])
            for r in csv.DictReader(f)
        ]
    with open(tmp_path / "m.json", encoding="utf-8") as f:
        from_json = [
            (r["id"], r["username"], r["first_name"], r["last_name"], r["phone"], r["is_bot"], r["status"])
            for r in json.load(f)
        ]
    assert from_csv == from_json


def test_json_keeps_unicode(records, tmp_path):
    write_records(records, tmp_path / "m.json", "json")
    assert "Émile" in (tmp_path / "m.json").read_text(encoding="utf-8")


def test_unknown_format(records, tmp_path):
    with pytest.raises(ValidationError):
        write_records(records, tmp_path / "m.xml", "xml")


def test_export_path(tmp_path):
    assert export_path("members.csv", str(tmp_path)) == str(tmp_path / "members.csv")
    absolute = str(tmp_path / "elsewhere.json")
    assert export_path(absolute, "/unused") == absolute
