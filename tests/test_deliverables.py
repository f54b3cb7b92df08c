"""Tests for deliverable status normalisation, reconciliation and gate scoring."""

import pytest

from renovation_hub import deliverables
from renovation_hub.deliverables import APPROVED, MISSING, REJECTED, SUBMITTED
from notion_pages import deliverable_page, select, rich_text, make_page, title, multi_select


@pytest.mark.parametrize("raw, expected", [
    ("Approved", APPROVED),
    ("  APPROVED ", APPROVED),
    ("Approved with comments", APPROVED),
    ("Not Approved", REJECTED),
    ("Unapproved", REJECTED),
    ("non-approved", REJECTED),
    ("Not yet approved", REJECTED),
    ("Never approved", REJECTED),
    ("Not fully approved", REJECTED),
    ("Disapproved", REJECTED),
    ("Approved - no further comments", APPROVED),
    ("Rejected", REJECTED),
    ("Declined by council", REJECTED),
    ("Failed inspection", REJECTED),
    ("Pending Review", SUBMITTED),
    ("Submitted", SUBMITTED),
    ("Resubmission required", SUBMITTED),
    ("In review", SUBMITTED),
    ("", MISSING),
    (None, MISSING),
    ("Draft", MISSING),
])
def test_normalize_status(raw, expected):
    assert deliverables.normalize_status(raw) == expected


def test_normalize_key_folds_accents_dashes_and_whitespace():
    assert deliverables.normalize_key("  G3 –  Finishes  Protégé ") == "g3 - finishes protege"


def test_is_required_ignores_case_and_dash_variants():
    required = {"G4 Authority Submission": ["Quotation Package – Ready"]}
    assert deliverables.is_required("g4 authority submission", "quotation package - ready", required)
    assert not deliverables.is_required("G4 Authority Submission", "Something else", required)
    assert not deliverables.is_required("G9 Unknown", "Quotation Package - Ready", required)


class TestToDeliverable:
    def test_construction_certificate_uses_review_status(self, small_gates):
        page = deliverable_page(
            "d-1", "Demolition Complete Certificate", "G5 Construction Documentation",
            status_name="Submitted", category="Construction Certificate",
            **{"Review Status": select("Approved")},
        )
        d = deliverables.to_deliverable(page, small_gates.required_by_gate)
        assert d["status"] == APPROVED
        assert d["rawStatus"] == "Approved"

    def test_other_categories_use_status(self, small_gates):
        page = deliverable_page(
            "d-2", "MOODBOARD", "G1 Concept", status_name="Pending Review",
            **{"Review Status": select("Approved")},
        )
        d = deliverables.to_deliverable(page, small_gates.required_by_gate)
        assert d["status"] == SUBMITTED
        assert d["isCritical"] is True
        assert d["isPriority"] is True

    def test_gate_falls_back_to_auto_formula(self, small_gates):
        page = make_page({
            "Select Deliverable:": title("MOODBOARD"),
            "Gate (Auto)": {"type": "formula", "formula": {"type": "string", "string": "G1 Concept"}},
            "Status": select("Approved"),
        }, page_id="d-3")
        assert deliverables.to_deliverable(page, small_gates.required_by_gate)["gate"] == "G1 Concept"

    def test_non_required_item_is_not_critical(self, small_gates):
        page = deliverable_page("d-4", "Site photos", "G1 Concept", status_name="Submitted")
        d = deliverables.to_deliverable(page, small_gates.required_by_gate)
        assert d["isCritical"] is False
        assert d["isPriority"] is False


class TestReconcile:
    def test_missing_required_items_get_placeholders(self, small_gates):
        raw = [deliverable_page("d-1", "Moodboard", "G1 Concept", status_name="Approved")]

        all_items, gates = deliverables.reconcile(raw, small_gates.required_by_gate)

        placeholders = [d for d in all_items if d["id"] is None]
        assert {(d["gate"], d["deliverableType"]) for d in placeholders} == {
            ("G1 Concept", "PROPOSED RENOVATION FLOOR PLAN"),
            ("G3 Design Development", "DOORS AND WINDOWS"),
        }
        assert all(d["status"] == MISSING and d["isCritical"] for d in placeholders)

    def test_every_required_pair_appears_exactly_once(self, small_gates):
        raw = [
            deliverable_page("d-1", "MOODBOARD", "G1 Concept", status_name="Approved"),
            deliverable_page("d-2", "Doors and Windows", "G3 Design Development", status_name="Submitted"),
        ]
        all_items, _ = deliverables.reconcile(raw, small_gates.required_by_gate)

        for gate, required in small_gates.required_by_gate.items():
            for required_type in required:
                matches = [
                    d for d in all_items
                    if deliverables.normalize_key(d["gate"]) == deliverables.normalize_key(gate)
                    and deliverables.normalize_key(d["deliverableType"]) == deliverables.normalize_key(required_type)
                ]
                assert len(matches) == 1

    def test_gate_scores(self, small_gates):
        raw = [
            deliverable_page("d-1", "MOODBOARD", "G1 Concept", status_name="Approved"),
            # Resubmitted copy of the same item must not push the rate above 1
            deliverable_page("d-2", "moodboard", "G1 Concept", status_name="Approved"),
            deliverable_page("d-3", "Site photos", "G1 Concept", status_name="Approved"),
        ]
        _, gates = deliverables.reconcile(raw, small_gates.required_by_gate)
        by_name = {g["gate"]: g for g in gates}

        assert "G2 Schematic" not in by_name
        g1 = by_name["G1 Concept"]
        assert (g1["approved"], g1["total"], g1["missing"]) == (1, 2, 1)
        assert g1["gateApprovalRate"] == pytest.approx(0.5)
        g3 = by_name["G3 Design Development"]
        assert (g3["approved"], g3["total"], g3["missing"]) == (0, 1, 1)
        assert all(0 <= g["gateApprovalRate"] <= 1 for g in gates)

    def test_fully_approved_gate(self, small_gates):
        raw = [
            deliverable_page("d-1", "MOODBOARD", "G1 Concept", status_name="Approved"),
            deliverable_page("d-2", "Proposed Renovation Floor Plan", "G1 Concept", status_name="approved"),
        ]
        _, gates = deliverables.reconcile(raw, small_gates.required_by_gate)
        g1 = next(g for g in gates if g["gate"] == "G1 Concept")
        assert g1["gateApprovalRate"] == 1
        assert g1["missing"] == 0


def test_find_deliverable_tolerates_gate_prefix():
    items = [
        {"deliverableType": "G4 - Renovation Permit", "status": APPROVED},
        {"deliverableType": "Contractor Awarded", "status": MISSING},
    ]
    assert deliverables.find_deliverable(items, "renovation permit")["status"] == APPROVED
    assert deliverables.find_deliverable(items, "Contractor Awarded")["status"] == MISSING
    assert deliverables.find_deliverable(items, "Handover Certificate") is None


def test_comments_do_not_affect_classification(small_gates):
    page = deliverable_page(
        "d-1", "MOODBOARD", "G1 Concept", status_name="Approved",
        Comments=rich_text("client rejected the first palette"),
        Gate=multi_select("G1 Concept"),
    )
    assert deliverables.to_deliverable(page, small_gates.required_by_gate)["status"] == APPROVED
