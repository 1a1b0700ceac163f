import csv
import io

import pytest

from app.models import schemas
from app.services import csv_service
from app.services.csv_service import CsvImportError

HEADER = "ID,Work Item Type,Title,Test Step,Step Action,Step Expected,Area Path,Assigned To,State\n"


def test_map_headers_tolerates_order_and_naming():
    mapping = csv_service.map_headers(["Title", "Step Expected", "Work Item Id", "Step Action", "Status"])
    assert mapping == {"title": 0, "step_expected": 1, "id": 2, "step_action": 3, "state": 4}


def test_requires_header_and_data():
    with pytest.raises(CsvImportError):
        csv_service.import_test_cases(HEADER, user_story_id=1)


def test_requires_title_column():
    with pytest.raises(CsvImportError):
        csv_service.import_test_cases("ID,Step Action\n1,Click\n", user_story_id=1)


def test_skips_non_test_work_items():
    content = HEADER + "5,Bug,Crash on save,,,,,,Active\n"
    with pytest.raises(CsvImportError):
        csv_service.import_test_cases(content, user_story_id=1)


def test_continuation_rows_group_under_previous_title():
    content = (
        HEADER
        + '10,Test Case,Checkout,,,,Shop,,Active\n'
        + ',,,1,"Precondition: cart has items",,,,\n'
        + ',,,3,Verify the total,"Total, including tax, is shown",,,\n'
        + ",,,2,Click Pay,,,,\n"
        + "11,Test Case,Refund,,,,Shop,,Active\n"
        + ",,,1,Open order history,,,,\n"
    )

    cases = csv_service.import_test_cases(content, user_story_id=3)

    assert [c.title for c in cases] == ["Functional Test: Checkout", "Functional Test: Refund"]
    checkout = cases[0]
    assert [s.action for s in checkout.test_steps_structured] == ["Click Pay", "Verify the total"]
    assert [s.step_number for s in checkout.test_steps_structured] == [1, 2]
    assert checkout.test_steps == ["1. Click Pay", "2. Verify the total"]
    assert checkout.test_steps_structured[0].expected_result == "Element responds appropriately to click action"
    assert checkout.expected_result == "Total, including tax, is shown"
    assert "IMPORTED PREREQUISITES:\n1. cart has items" in checkout.prerequisites
    assert checkout.user_story_id == 3
    assert checkout.status == schemas.TestCaseStatus.PENDING


def test_keyword_analysis_sets_type_and_permissions():
    content = (
        HEADER
        + "1,Test Case,Security: block unauthorized access,,,,,,Active\n"
        + ",,,1,Open admin page as guest,Access denied,,,\n"
        + "2,Test Case,Orders API,,,,,,Active\n"
        + ",,,1,Call the order service,200 returned,,,\n"
    )

    security, integration = csv_service.import_test_cases(content, user_story_id=1)

    assert security.title == "Security: block unauthorized access"
    assert security.test_case_type == schemas.TestCaseType.SECURITY
    assert security.category == schemas.TestCaseCategory.NON_FUNCTIONAL
    assert security.priority == schemas.TestCasePriority.HIGH
    assert security.required_permissions == "admin, security-test"

    assert integration.test_case_type == schemas.TestCaseType.API
    assert integration.platform == schemas.Platform.API
    assert integration.priority == schemas.TestCasePriority.LOW


def test_design_state_raises_priority():
    content = HEADER + "1,Test Case,Profile edit,,,,,,Design\n" + ",,,1,Change name,Name saved,,,\n"
    case = csv_service.import_test_cases(content, user_story_id=1)[0]
    assert case.priority == schemas.TestCasePriority.HIGH


def test_work_item_without_steps_gets_placeholder_step():
    case = csv_service.import_test_cases(HEADER + "1,Test Case,Smoke,,,,,,Active\n", user_story_id=1)[0]
    assert [s.action for s in case.test_steps_structured] == ["Execute the test scenario as described"]
    assert case.prerequisites.startswith("SETUP REQUIREMENTS:")


def test_export_uses_azure_layout():
    steps = [
        schemas.TestStep(step_number=1, action="Open, then sign in", expected_result="Signed in"),
        schemas.TestStep(step_number=2, action="Log out", expected_result="Signed out"),
    ]
    case = schemas.TestCase(
        id=1,
        title="Session",
        objective="Session handling",
        test_steps=["1. Open, then sign in", "2. Log out"],
        test_steps_structured=steps,
        expected_result="Works",
        status=schemas.TestCaseStatus.APPROVED,
        azure_test_case_id="900",
    )

    rows = list(csv.reader(io.StringIO(csv_service.export_test_cases([case], area_path="Shop"))))

    assert rows[0] == csv_service.EXPORT_HEADERS
    assert rows[1] == ["900", "Test Case", "Session", "", "", "", "Shop", "", "Ready"]
    assert rows[2] == ["", "", "", "1", "Open, then sign in", "Signed in", "", "", ""]
    assert rows[3][3:6] == ["2", "Log out", "Signed out"]


def test_exported_csv_imports_back():
    steps = [schemas.TestStep(step_number=1, action="Click Save", expected_result="Saved")]
    case = schemas.TestCase(
        id=1,
        title="Save draft",
        objective="Save",
        test_steps=["1. Click Save"],
        test_steps_structured=steps,
        expected_result="Saved",
    )

    imported = csv_service.import_test_cases(csv_service.export_test_cases([case]), user_story_id=2)

    assert len(imported) == 1
    assert [s.action for s in imported[0].test_steps_structured] == ["Click Save"]
