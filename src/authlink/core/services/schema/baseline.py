"""Schema history shipped with the package."""

from src.authlink.core.services.schema.transformations import AddField, AddMethod, Transformation
from src.authlink.entities.core.credential import CredentialMethod, MethodKind

EMAIL_PASSWORD = CredentialMethod(
    name="email_password",
    kind=MethodKind.PASSWORD,
    identifier_label="email",
    case_insensitive=True,
)

GITHUB_OAUTH = CredentialMethod(
    name="github_oauth",
    kind=MethodKind.OAUTH,
    identifier_label="provider_id",
)

USERNAME_PASSWORD = CredentialMethod(
    name="username_password",
    kind=MethodKind.PASSWORD,
    identifier_label="username",
)


def baseline_transformations() -> list[Transformation]:
    """Versions 1..4, in order. Append new transformations; never reorder."""
    return [
        AddMethod(EMAIL_PASSWORD),
        AddMethod(GITHUB_OAUTH),
        AddField("github_oauth", "username", None),
        AddMethod(USERNAME_PASSWORD),
    ]
