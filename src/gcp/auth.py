import os

import google.oauth2.credentials
import google.oauth2.service_account
import googleapiclient.discovery
import httplib2
from google_auth_httplib2 import AuthorizedHttp

from src.BFMyGCPPerms.errors import ConfigurationError


CLOUD_PLATFORM_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


def load_credentials(sa_credentials_path=None, token=None):
    """
    Build GCP credentials from a raw access token or a service account key.

    CLOUDSDK_AUTH_ACCESS_TOKEN and GOOGLE_APPLICATION_CREDENTIALS are used when
    the corresponding argument is not given. A token wins over a key file.
    """
    token = (token or os.getenv("CLOUDSDK_AUTH_ACCESS_TOKEN") or "").strip()
    if token:
        return google.oauth2.credentials.Credentials(token)

    sa_credentials_path = sa_credentials_path or os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
    if not sa_credentials_path:
        raise ConfigurationError("No credentials given. Use --sa-credentials-path or --token.")

    try:
        return google.oauth2.service_account.Credentials.from_service_account_file(
            sa_credentials_path, scopes=CLOUD_PLATFORM_SCOPES)
    except OSError as e:
        raise ConfigurationError(f"Error reading credentials file: {e}") from e
    except (ValueError, KeyError) as e:
        raise ConfigurationError(f"Error parsing credentials file: {e}") from e


def parse_proxy(proxy):
    # Protocol not needed
    proxy = proxy.split("//")[-1].rstrip("/")
    host, _, port = proxy.rpartition(":")
    if not host or not port.isdigit():
        raise ConfigurationError(f"Invalid proxy {proxy!r}, expected host:port (e.g. 127.0.0.1:8080).")
    return host, int(port)


class GCPClient:
    """
    Authorized access to the Cloud Resource Manager testIamPermissions method.

    A new AuthorizedHttp is created for every request because httplib2 objects
    can't be shared between threads.
    """

    def __init__(self, credentials, billing_project=None, proxy=None):
        self.credentials = credentials
        self.billing_project = billing_project or None
        if proxy:
            # httplib2 only tunnels through proxies when PySocks is importable
            if getattr(httplib2, "socks", None) is None:
                raise ConfigurationError("Using a proxy needs PySocks installed (pip install PySocks).")
            self.proxy_host, self.proxy_port = parse_proxy(proxy)
        else:
            self.proxy_host = None
            self.proxy_port = None

    def authed_http(self):
        if self.proxy_host and self.proxy_port:
            proxy_info = httplib2.ProxyInfo(
                proxy_type=httplib2.socks.PROXY_TYPE_HTTP,
                proxy_host=self.proxy_host,
                proxy_port=self.proxy_port,
            )
            the_http = httplib2.Http(proxy_info=proxy_info, disable_ssl_certificate_validation=True)
            return AuthorizedHttp(self.credentials, http=the_http)
        return AuthorizedHttp(self.credentials)

    def test_iam_permissions(self, target, permissions):
        service = googleapiclient.discovery.build("cloudresourcemanager", "v3", http=self.authed_http(), cache_discovery=False)
        collection = {
            "projects": service.projects,
            "folders": service.folders,
            "organizations": service.organizations,
        }[target.kind]()

        req = collection.testIamPermissions(resource=target.resource_name, body={"permissions": permissions})
        if self.billing_project:
            req.headers["X-Goog-User-Project"] = self.billing_project
        return req.execute()
