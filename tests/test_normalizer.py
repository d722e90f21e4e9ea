import pytest

from core.error_handling import InvalidInputError
from core.services.normalizer import normalize_condition


@pytest.mark.parametrize(
    "raw",
    ["Kidney Stones", "kidney stones", "  KIDNEY STONES  ", "\tKidney stones\n"],
)
def test_variants_share_one_key(raw):
    assert normalize_condition(raw) == "kidney stones"


def test_normalization_is_idempotent():
    once = normalize_condition("  Pneumonia ")
    assert normalize_condition(once) == once


@pytest.mark.parametrize("raw", [None, "", "   ", "\n\t", 42])
def test_blank_or_missing_condition_rejected(raw):
    with pytest.raises(InvalidInputError) as exc_info:
        normalize_condition(raw)

    assert exc_info.value.http_status == 400
    assert exc_info.value.details["field"] == "condition"
