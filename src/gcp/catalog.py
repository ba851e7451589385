import requests
from bs4 import BeautifulSoup

from src.BFMyGCPPerms.errors import ConfigurationError


PERMISSIONS_REFERENCE_URL = "https://cloud.google.com/iam/docs/permissions-reference"
GCP_DOCS_BASE_URL = "https://cloud.google.com"


def _get_page(session, url):
    try:
        resp = session.get(url, timeout=30)
    except requests.RequestException as e:
        raise ConfigurationError(f"Error downloading GCP permissions from {url}: {e}") from e
    if resp.status_code != 200:
        raise ConfigurationError(f"Error downloading GCP permissions from {url} (HTTP {resp.status_code})")
    return resp.text


def _td_ids(html):
    soup = BeautifulSoup(html, "html.parser")
    return [td["id"] for td in soup.find_all("td", id=True)]


def _iframe_url(html):
    iframe = BeautifulSoup(html, "html.parser").find("iframe", src=True)
    if iframe is None:
        return None
    url = iframe["src"]
    if url.startswith("/"):
        url = GCP_DOCS_BASE_URL + url
    return url


def download_gcp_permissions(session=None):
    """
    Scrape every permission name from the IAM permissions reference.

    The reference sometimes embeds the table in an iframe, in that case the
    iframe page is downloaded too.

    Returns:
        list: Permission names in page order.
    """
    session = session or requests.Session()
    base_ref_page = _get_page(session, PERMISSIONS_REFERENCE_URL)
    permissions = _td_ids(base_ref_page)

    if not permissions:
        frame_url = _iframe_url(base_ref_page)
        if not frame_url:
            raise ConfigurationError("Could not find the permissions table nor its iframe in the IAM permissions reference.")
        permissions = _td_ids(_get_page(session, frame_url))

    if not permissions:
        raise ConfigurationError("No GCP permissions found in the IAM permissions reference.")
    return permissions


def load_permissions_file(path):
    """Read a permission per line, ignoring blank lines and # comments."""
    try:
        with open(path) as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise ConfigurationError(f"Error reading permissions file {path}: {e}") from e

    return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]
