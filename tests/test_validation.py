import pytest

from blog_api.schemas import PostInput
from blog_api.validation import validate_post_input


@pytest.mark.parametrize("length", [1, 50, 100])
def test_title_lengths_within_bounds_pass(length):
    assert validate_post_input(PostInput(title="t" * length, description="d")) == {}


@pytest.mark.parametrize("length", [1, 2500, 5000])
def test_description_lengths_within_bounds_pass(length):
    assert validate_post_input(PostInput(title="t", description="d" * length)) == {}


def test_title_over_limit_is_rejected():
    errors = validate_post_input(PostInput(title="t" * 101, description="d"))
    assert set(errors) == {"title"}
    assert "100" in errors["title"]


def test_description_over_limit_is_rejected():
    errors = validate_post_input(PostInput(title="t", description="d" * 5001))
    assert set(errors) == {"description"}


def test_missing_and_empty_fields_are_required():
    errors = validate_post_input(PostInput(title="", description=None))
    assert errors == {
        "title": "Title is required",
        "description": "Description is required",
    }


def test_image_url_must_be_a_url():
    errors = validate_post_input(
        PostInput(title="t", description="d", image_url="not a url")
    )
    assert set(errors) == {"image_url"}


def test_empty_image_url_counts_as_absent():
    assert validate_post_input(PostInput(title="t", description="d", image_url="")) == {}


def test_valid_image_url_passes():
    body = PostInput(title="t", description="d", image_url="https://cdn.example.com/a.png")
    assert validate_post_input(body) == {}
