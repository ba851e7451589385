from collections import namedtuple
import http.client

import google.auth.exceptions
import googleapiclient.errors
import httplib2

from src.BFMyGCPPerms.errors import ConfigurationError, ProbeError


RESOURCE_KINDS = ("projects", "folders", "organizations")


class ResourceTarget(namedtuple("ResourceTarget", ["kind", "id"])):
    """
    The project, folder or organization whose permissions are brute-forced.
    """
    __slots__ = ()

    def __new__(cls, kind, id):
        if kind not in RESOURCE_KINDS:
            raise ConfigurationError(f"Unsupported resource type: {kind}")
        id = str(id).strip() if id is not None else ""
        if not id:
            raise ConfigurationError(f"An ID is needed to check permissions over {kind}.")
        # Folders and organizations are always referenced by number
        if kind != "projects" and not id.isdigit():
            raise ConfigurationError(f"{kind[:-1].capitalize()} ID must be a number.")
        return super().__new__(cls, kind, id)

    @classmethod
    def project(cls, project_id):
        return cls("projects", project_id)

    @classmethod
    def folder(cls, folder_id):
        return cls("folders", folder_id)

    @classmethod
    def organization(cls, org_id):
        return cls("organizations", org_id)

    @classmethod
    def from_options(cls, project=None, folder=None, organization=None):
        """
        Build the target from the CLI options. Exactly one of them must be set.
        """
        given = [(kind, value) for kind, value in zip(RESOURCE_KINDS, (project, folder, organization)) if value]
        if not given:
            raise ConfigurationError("You must specify either a project, folder, or organization.")
        if len(given) > 1:
            raise ConfigurationError("Specify only one of project, folder or organization.")
        kind, value = given[0]
        return cls(kind, value)

    @property
    def resource_name(self):
        return f"{self.kind}/{self.id}"

    def __str__(self):
        return self.resource_name


def _invalid_permissions(batch, error_text):
    # The API names rejected permissions as "Permission <perm> is not valid ..."
    return [perm for perm in batch if f" {perm} " in error_text]


def probe_permissions(batch, target, client):
    """
    Ask the API which permissions of the batch the caller holds on the target.

    Args:
        batch (sequence): Permission names, no more than the API per-call limit.
        target (ResourceTarget): Resource to test the permissions against.
        client: Object exposing test_iam_permissions(target, permissions).

    Returns:
        frozenset: Held subset of the batch.

    Raises:
        ProbeError: The call failed or returned something unexpected.
    """
    batch = tuple(batch)
    resource = target.resource_name

    try:
        response = client.test_iam_permissions(target, list(batch))
    except googleapiclient.errors.HttpError as e:
        raise ProbeError(
            f"Error checking permissions on {resource}: {e}",
            resource=resource,
            batch=batch,
            status=getattr(e.resp, "status", None),
            invalid_permissions=_invalid_permissions(batch, str(e)),
        ) from e
    # Undecodable bodies surface as ValueError (UnicodeDecodeError, JSONDecodeError)
    except (googleapiclient.errors.Error, google.auth.exceptions.GoogleAuthError, httplib2.HttpLib2Error,
            http.client.HTTPException, OSError, ValueError) as e:
        raise ProbeError(f"Error checking permissions on {resource}: {e}", resource=resource, batch=batch) from e

    if not isinstance(response, dict):
        raise ProbeError(f"Malformed testIamPermissions response for {resource}: {response!r}", resource=resource, batch=batch)

    # An empty answer comes back without the "permissions" key
    have_perms = response.get("permissions", [])
    if not isinstance(have_perms, list) or not all(isinstance(p, str) for p in have_perms):
        raise ProbeError(f"Malformed permissions list for {resource}: {have_perms!r}", resource=resource, batch=batch)

    unexpected = set(have_perms).difference(batch)
    if unexpected:
        raise ProbeError(
            f"API returned permissions that were not requested for {resource}: {', '.join(sorted(unexpected))}",
            resource=resource,
            batch=batch,
        )

    return frozenset(have_perms)
