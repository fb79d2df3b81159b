import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from stockroom.schemas.settings import CurrentUser
from stockroom.services.access import ALL_SECTIONS, allowed_sections, can_access, check_access


@pytest.mark.parametrize(
    "role, section, expected",
    [
        ("admin", "settings", True),
        ("admin", "history", True),
        ("staff", "borrows", True),
        ("staff", "reports", False),
        ("coach", "items", True),
        ("coach", "settings", False),
        ("guest", "dashboard", True),
        ("guest", "items", False),
    ],
)
def test_role_permissions(role, section, expected):
    user = CurrentUser(username="pat", role=role)
    assert can_access(user, section) is expected


def test_admin_sees_everything():
    assert allowed_sections("admin") == ALL_SECTIONS
    assert allowed_sections(None) == ("dashboard",)


def test_check_access_reports_refusal():
    staff = CurrentUser(username="pat", role="staff")

    assert check_access(staff, "items").value == "items"

    refused = check_access(staff, "settings")
    assert refused.code == "not_authorized"
    assert refused.details == {"section": "settings", "role": "staff"}

    anonymous = check_access(None, "history")
    assert anonymous.code == "not_authorized"
