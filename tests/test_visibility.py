import pytest
from hypothesis import given, strategies as st

from deadfn.visibility import Visibility, classify_visibility


@pytest.mark.parametrize(
    "annotation, expected",
    [
        (None, Visibility.PRIVATE),
        ("", Visibility.PRIVATE),
        ("pub", Visibility.PUBLIC),
        ("pub(crate)", Visibility.CRATE),
        ("pub(super)", Visibility.SUPER),
        ("pub(self)", Visibility.PRIVATE),
        ("pub(in crate)", Visibility.CRATE),
        ("pub(in super)", Visibility.SUPER),
        ("pub(in crate::net)", Visibility.RESTRICTED),
        ("pub(in super::super)", Visibility.RESTRICTED),
        ("pub( crate )", Visibility.CRATE),
        ("pub (in crate :: net)", Visibility.RESTRICTED),
        ("crate", Visibility.CRATE),
    ],
)
def test_classify_visibility(annotation, expected):
    assert classify_visibility(annotation) is expected


def test_labels_and_public_flag():
    assert Visibility.PUBLIC.label == "pub"
    assert Visibility.CRATE.label == "pub(crate)"
    assert Visibility.PRIVATE.label == "private"
    assert Visibility.PUBLIC.is_public
    assert not any(v.is_public for v in Visibility if v is not Visibility.PUBLIC)


def test_values_are_the_report_keys():
    assert [v.value for v in Visibility] == [
        "public",
        "crate-visible",
        "parent-visible",
        "restricted-path",
        "private",
    ]


@given(st.one_of(st.none(), st.text()))
def test_classifier_is_total_and_deterministic(annotation):
    first = classify_visibility(annotation)
    assert isinstance(first, Visibility)
    assert classify_visibility(annotation) is first


@given(st.text(alphabet="abcdefghijklmnopqrstuvwxyz_:", min_size=1).filter(
    lambda s: "".join(s.split()) not in {"crate", "super", "self"}
))
def test_other_restricted_paths(path):
    assert classify_visibility(f"pub(in {path})") is Visibility.RESTRICTED
