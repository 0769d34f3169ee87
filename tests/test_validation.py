import pytest

from peer_feedback.core.exceptions import (
    InvalidRatingValueError,
    MissingFieldsError,
    MissingReasonError,
    NameMismatchError,
    RatingCountMismatchError,
    SelfRatingError,
    UnknownEmployeeError,
)
from peer_feedback.schemas.feedback import EvaluatorIn, FeedbackSubmission
from peer_feedback.services.feedback_service import (
    compute_metadata,
    parse_rating,
    require_fields,
    validate_completeness,
    validate_identity,
    validate_rating_values,
    validate_reasons,
)


def _ratings_for(roster, evaluator, value=5):
    return {str(i): value for i in roster.others(evaluator.id)}


# --- Required fields ---

@pytest.mark.parametrize("field", ["evaluator", "ratings", "timestamp"])
def test_missing_top_level_field(make_payload, evaluator, field):
    payload = make_payload(evaluator)
    del payload[field]
    with pytest.raises(MissingFieldsError) as exc:
        require_fields(FeedbackSubmission.model_validate(payload))
    assert exc.value.details["missing"] == [field]
    assert exc.value.status_code == 400


def test_empty_timestamp_counts_as_missing(make_payload, evaluator):
    payload = make_payload(evaluator)
    payload["timestamp"] = ""
    with pytest.raises(MissingFieldsError):
        require_fields(FeedbackSubmission.model_validate(payload))


def test_evaluator_without_number_is_missing(make_payload, evaluator):
    payload = make_payload(evaluator)
    del payload["evaluator"]["number"]
    with pytest.raises(MissingFieldsError):
        require_fields(FeedbackSubmission.model_validate(payload))


def test_reasons_are_optional(make_payload, evaluator):
    payload = make_payload(evaluator)
    del payload["reasons"]
    require_fields(FeedbackSubmission.model_validate(payload))


# --- Identity ---

def test_identity_resolves_roster_employee(roster):
    emp = validate_identity(roster, EvaluatorIn(name="jitendra NIKHADE", number=1))
    assert emp.id == 1
    assert emp.designation == "Office Superintendent"


def test_unknown_number(roster):
    with pytest.raises(UnknownEmployeeError) as exc:
        validate_identity(roster, EvaluatorIn(name="Nobody", number=999))
    assert exc.value.error_code == "IDENTITY_INVALID"
    assert exc.value.details == {"reason": "UNKNOWN_EMPLOYEE"}


def test_name_mismatch(roster):
    with pytest.raises(NameMismatchError) as exc:
        validate_identity(roster, EvaluatorIn(name="Surekha Pande", number=1))
    assert exc.value.error_code == "IDENTITY_INVALID"
    assert exc.value.details == {"reason": "NAME_MISMATCH"}


# --- Completeness ---

def test_self_rating_rejected_regardless_of_other_entries(roster, evaluator):
    ratings = _ratings_for(roster, evaluator)
    ratings[str(evaluator.id)] = 7
    with pytest.raises(SelfRatingError):
        validate_completeness(roster, evaluator, ratings)

    # Even when the count would otherwise be right
    ratings.pop(str(roster.others(evaluator.id)[0]))
    with pytest.raises(SelfRatingError):
        validate_completeness(roster, evaluator, ratings)

    with pytest.raises(SelfRatingError):
        validate_completeness(roster, evaluator, {str(evaluator.id): 5})


def test_one_rating_short(roster, evaluator):
    ratings = _ratings_for(roster, evaluator)
    ratings.popitem()
    with pytest.raises(RatingCountMismatchError) as exc:
        validate_completeness(roster, evaluator, ratings)
    assert exc.value.message == f"Expected {len(roster) - 1} ratings, received {len(roster) - 2}"


def test_one_rating_too_many(roster, evaluator):
    ratings = _ratings_for(roster, evaluator)
    ratings["999"] = 5
    with pytest.raises(RatingCountMismatchError):
        validate_completeness(roster, evaluator, ratings)


def test_right_count_but_unknown_employee(roster, evaluator):
    ratings = _ratings_for(roster, evaluator)
    dropped = roster.others(evaluator.id)[-1]
    del ratings[str(dropped)]
    ratings["15"] = 5
    with pytest.raises(RatingCountMismatchError) as exc:
        validate_completeness(roster, evaluator, ratings)
    assert exc.value.details == {"missing": [dropped], "unexpected": ["15"]}


def test_same_employee_keyed_twice(roster, evaluator):
    ratings = _ratings_for(roster, evaluator)
    ratings.pop("2")
    ratings["02"] = 5
    ratings.pop("3")
    ratings[" 2"] = 5
    with pytest.raises(RatingCountMismatchError):
        validate_completeness(roster, evaluator, ratings)


def test_completeness_rekeys_by_canonical_id(roster, evaluator):
    ratings = _ratings_for(roster, evaluator)
    ratings.pop("2")
    ratings["02"] = 6
    keyed = validate_completeness(roster, evaluator, ratings)
    assert keyed["2"] == 6
    assert "02" not in keyed


# --- Rating range ---

@pytest.mark.parametrize("value,expected", [
    (1, 1), (10, 10), ("7", 7), (" 4 ", 4), (8.0, 8),
    (0, None), (11, None), ("abc", None), (5.5, None), (True, None), (None, None), ([5], None),
])
def test_parse_rating(value, expected):
    parsed = parse_rating(value)
    if expected is None:
        assert parsed is None or not 1 <= parsed <= 10
    else:
        assert parsed == expected


@pytest.mark.parametrize("bad", [0, 11, -3, "ten", 6.5, None, False])
def test_out_of_range_value_names_employee(bad):
    ratings = {"2": 5, "3": bad, "4": 5}
    with pytest.raises(InvalidRatingValueError) as exc:
        validate_rating_values(ratings)
    assert exc.value.details == {"employeeId": "3"}
    assert "employee 3" in exc.value.message


def test_string_ratings_are_parsed():
    assert validate_rating_values({"2": "10", "3": "1"}) == {"2": 10, "3": 1}


# --- Reasons ---

@pytest.mark.parametrize("rating", [1, 2, 3, 9, 10])
def test_extreme_rating_needs_reason(roster, rating):
    with pytest.raises(MissingReasonError) as exc:
        validate_reasons(roster, {"2": rating}, {})
    assert exc.value.details == {"employeeId": "2", "rating": rating}
    assert exc.value.message == f"Reason required for Surekha Pande (rating: {rating})"


@pytest.mark.parametrize("rating", [4, 5, 6, 7, 8])
def test_middle_rating_needs_no_reason(roster, rating):
    assert validate_reasons(roster, {"2": rating}, {}) == {}


def test_blank_reason_does_not_count(roster):
    with pytest.raises(MissingReasonError):
        validate_reasons(roster, {"2": 3}, {"2": "   \n"})
    with pytest.raises(MissingReasonError):
        validate_reasons(roster, {"2": 9}, {"2": None})


def test_reasons_are_trimmed_and_limited_to_rated_employees(roster):
    reasons = validate_reasons(
        roster,
        {"2": 3, "3": 6},
        {"2": "  Misses deadlines  ", "3": "Solid", "4": "Not rated", "x": "junk"},
    )
    assert reasons == {"2": "Misses deadlines", "3": "Solid"}


def test_first_missing_reason_reported(roster):
    with pytest.raises(MissingReasonError) as exc:
        validate_reasons(roster, {"2": 5, "3": 10, "4": 1}, {})
    assert exc.value.details["employeeId"] == "3"


# --- Metadata ---

def test_metadata_counts_and_average():
    meta = compute_metadata({"2": 3, "3": 9, "4": 10, "5": 4, "6": 6})
    assert meta.total_ratings == 5
    assert meta.low_scores == 1
    assert meta.high_scores == 2
    assert meta.average_rating == "6.40"


def test_metadata_average_rounds_to_two_places():
    assert compute_metadata({"2": 7, "3": 7, "4": 8}).average_rating == "7.33"
    assert compute_metadata({"2": 5, "3": 5}).average_rating == "5.00"
