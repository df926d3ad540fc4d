"""Post input rules: required title/description with length bounds, optional URL."""
from pydantic import AnyUrl, TypeAdapter, ValidationError

from blog_api.models import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH
from blog_api.schemas import PostInput

_url_adapter = TypeAdapter(AnyUrl)


def validate_post_input(body: PostInput) -> dict[str, str]:
    """
    Return a map of field name -> message; empty when the input is acceptable.

    Only the first failing rule per field is reported. An empty ``image_url``
    counts as "not supplied".
    """
    errors: dict[str, str] = {}

    if not body.title:
        errors["title"] = "Title is required"
    elif len(body.title) > TITLE_MAX_LENGTH:
        errors["title"] = f"Title must be {TITLE_MAX_LENGTH} characters or fewer"

    if not body.description:
        errors["description"] = "Description is required"
    elif len(body.description) > DESCRIPTION_MAX_LENGTH:
        errors["description"] = (
            f"Description must be {DESCRIPTION_MAX_LENGTH} characters or fewer"
        )

    if body.image_url:
        try:
            _url_adapter.validate_python(body.image_url)
        except ValidationError:
            errors["image_url"] = "Image URL must be a valid URL"

    return errors
