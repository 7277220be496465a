"""Whole-database invariant checks and state snapshots."""

from collections import Counter
from typing import Any

from sqlmodel import Session

from src.authlink.core.errors import InvariantViolation
from src.authlink.entities.core.credential import CredentialMethodRepository, CredentialRepository
from src.authlink.entities.core.credential_link import CredentialLinkRepository
from src.authlink.entities.core.user import UserRepository


def find_violations(session: Session) -> list[str]:
    """Describe every broken invariant; an empty list means the state is sound."""
    violations: list[str] = []

    methods = CredentialMethodRepository(session).names()
    known_methods = set(methods)
    users = {user.uid for user in UserRepository(session).list_all()}

    credentials = CredentialRepository(session)
    instances = {}
    for method in methods:
        owners = Counter()
        for instance in credentials.list_for_method(method):
            instances[instance.cid] = instance
            owners[instance.uid] += 1
            if instance.uid not in users:
                violations.append(f"credential {instance.cid} is owned by missing user {instance.uid}")
        violations.extend(
            f"user {uid} has {count} '{method}' credentials"
            for uid, count in owners.items()
            if count > 1
        )

    for link in CredentialLinkRepository(session).list_all():
        if link.uid not in users:
            violations.append(f"link row {link.uid} has no user")
        slots = set(link.pointers)
        if slots != known_methods:
            missing = sorted(known_methods - slots)
            extra = sorted(slots - known_methods)
            violations.append(f"link row {link.uid} slots differ: missing={missing} extra={extra}")
        for method, cid in link.pointers.items():
            if cid is None:
                continue
            instance = instances.get(cid)
            if instance is None:
                violations.append(f"link row {link.uid} points {method} at missing credential {cid}")
            elif instance.method != method:
                violations.append(
                    f"link row {link.uid} points {method} at '{instance.method}' credential {cid}"
                )
            elif instance.uid != link.uid:
                violations.append(
                    f"link row {link.uid} points {method} at credential {cid} of user {instance.uid}"
                )

    return violations


def verify_invariants(session: Session) -> None:
    violations = find_violations(session)
    if violations:
        raise InvariantViolation(
            f"{len(violations)} invariant violation(s): {violations[0]}",
            details={"violations": violations},
        )


def snapshot_state(session: Session) -> dict[str, Any]:
    """Comparable dump of users, methods, credentials and links."""
    credentials = CredentialRepository(session)
    method_repository = CredentialMethodRepository(session)
    methods = method_repository.list_all()
    return {
        "users": [user.model_dump() for user in UserRepository(session).list_all()],
        "methods": [method.model_dump() for method in methods],
        "credentials": [
            instance.model_dump()
            for method in methods
            for instance in credentials.list_for_method(method.name)
        ],
        "links": [link.model_dump() for link in CredentialLinkRepository(session).list_all()],
    }
