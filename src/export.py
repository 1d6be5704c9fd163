import csv
import json
import os
from dataclasses import dataclass, asdict

from entities import classify_participant
from errors import ValidationError

EXPORT_FORMATS = ('csv', 'json')

# CSV column title -> MemberRecord field
CSV_COLUMNS = [
    ('ID', 'id'),
    ('Username', 'username'),
    ('FirstName', 'first_name'),
    ('LastName', 'last_name'),
    ('Phone', 'phone'),
    ('IsBot', 'is_bot'),
    ('ParticipantStatus', 'status'),
]


@dataclass
class MemberRecord:
    id: str
    username: str
    first_name: str
    last_name: str
    phone: str
    is_bot: bool
    status: str

    @classmethod
    def from_participant(cls, participant, user):
        """Flatten a participant and its user into an export row"""
        return cls(
            id=str(user.id),
            username=user.username or "N/A",
            first_name=user.first_name or "N/A",
            last_name=user.last_name or "N/A",
            phone=user.phone or "N/A",
            is_bot=bool(user.bot),
            status=classify_participant(participant).value,
        )


def export_path(file_name, export_dir='.'):
    """Relative file names are placed under export_dir"""
    if os.path.isabs(file_name):
        return file_name
    return os.path.join(export_dir, file_name)


def write_json(records, path):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump([asdict(r) for r in records], f, ensure_ascii=False, indent=2)


def write_csv(records, path):
    with open(path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.writer(f)
        writer.writerow([title for title, _ in CSV_COLUMNS])
        for record in records:
            row = asdict(record)
            writer.writerow([row[name] for _, name in CSV_COLUMNS])


def write_records(records, path, fmt):
    if fmt == 'json':
        write_json(records, path)
    elif fmt == 'csv':
        write_csv(records, path)
    else:
        raise ValidationError(f"Unsupported export format: {fmt}")
