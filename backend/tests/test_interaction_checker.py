from __future__ import annotations

from medassist_core import InteractionChecker


def test_known_pair_yields_warning_naming_both():
    report = InteractionChecker().check(["aspirin", "warfarin"])

    assert len(report.warnings) == 1
    assert "aspirin" in report.warnings[0]
    assert "warfarin" in report.warnings[0]
    assert report.interactions[0].warning == "May increase bleeding risk when combined with blood thinners"


def test_single_medication_has_no_warnings():
    report = InteractionChecker().check(["aspirin"])

    assert report.warnings == []
    assert report.interactions == []


def test_reverse_direction_is_found_when_symmetric():
    table = {"alpha": {"interactions": ["beta"], "warnings": "Do not combine"}}

    symmetric = InteractionChecker(table).check(["beta", "alpha"])
    directional = InteractionChecker(table, symmetric=False).check(["beta", "alpha"])

    assert [(item.medication1, item.medication2) for item in symmetric.interactions] == [("alpha", "beta")]
    assert directional.warnings == []


def test_each_pair_reported_once():
    report = InteractionChecker().check(["aspirin", "ibuprofen", "warfarin"])

    pairs = {frozenset((item.medication1, item.medication2)) for item in report.interactions}
    assert len(report.interactions) == 3
    assert pairs == {
        frozenset({"aspirin", "ibuprofen"}),
        frozenset({"aspirin", "warfarin"}),
        frozenset({"ibuprofen", "warfarin"}),
    }


def test_names_are_normalized_and_deduplicated():
    report = InteractionChecker().check(["Aspirin", " aspirin ", "WARFARIN"])

    assert len(report.warnings) == 1
    assert report.as_dict()["interactions"][0] == {
        "medication1": "aspirin",
        "medication2": "warfarin",
        "warning": "May increase bleeding risk when combined with blood thinners",
    }


def test_unknown_medications_are_ignored():
    assert InteractionChecker().check(["metformin", "insulin"]).warnings == []
