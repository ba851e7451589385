import sys

import pytest

import BFMyGCPPerms
from src.gcp import auth


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("CLOUDSDK_AUTH_ACCESS_TOKEN", raising=False)
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)


@pytest.fixture
def perms_file(tmp_path):
    path = tmp_path / "perms.txt"
    path.write_text("\n".join(["a.x", "a.y", "b.z", "b.w"]) + "\n")
    return str(path)


def test_defaults():
    args = BFMyGCPPerms.parse_args(["--project", "p"])
    assert (args.threads, args.size, args.verbose) == (3, 50, False)


def test_missing_target_exits_before_scanning(capsys, fake_client_cls, perms_file):
    clients = []

    def factory(*args, **kwargs):
        clients.append(fake_client_cls())
        return clients[-1]

    code = BFMyGCPPerms.main(["--token", "t", "--permissions-file", perms_file], client_factory=factory)

    assert code == 1
    assert "You must specify either a project, folder, or organization." in capsys.readouterr().out
    assert clients == []


def test_more_than_one_target_is_rejected():
    with pytest.raises(SystemExit) as excinfo:
        BFMyGCPPerms.main(["--project", "p", "--folder", "1", "--token", "t"])
    assert excinfo.value.code != 0


@pytest.mark.parametrize("extra", [
    ["--size", "0"],
    ["--size", "101"],
    ["--threads", "0"],
    ["--folder", "not-a-number"],
])
def test_invalid_options(capsys, perms_file, fake_client_cls, extra):
    base = ["--token", "t", "--permissions-file", perms_file]
    if "--folder" not in extra:
        base += ["--project", "p"]
    code = BFMyGCPPerms.main(base + extra, client_factory=lambda *a, **kw: fake_client_cls())
    assert code == 1


def test_missing_credentials(capsys, perms_file):
    code = BFMyGCPPerms.main(["--project", "p", "--permissions-file", perms_file])
    assert code == 1
    assert "No credentials given" in capsys.readouterr().out


def test_empty_catalog(tmp_path, capsys, fake_client_cls):
    path = tmp_path / "empty.txt"
    path.write_text("\n# nothing\n")
    code = BFMyGCPPerms.main(["--project", "p", "--token", "t", "--permissions-file", str(path)],
                             client_factory=lambda *a, **kw: fake_client_cls())
    assert code == 1
    assert "catalog is empty" in capsys.readouterr().out


def test_partial_failure_still_exits_zero(capsys, perms_file, fake_client_cls):
    client = fake_client_cls(held={"a.x", "b.z"}, fail_on={"b.w"})
    received = {}

    def factory(credentials, billing_project=None, proxy=None):
        received.update(token=credentials.token, billing_project=billing_project, proxy=proxy)
        return client

    code = BFMyGCPPerms.main(
        ["--project", "p", "--token", "t", "--permissions-file", perms_file, "--size", "2", "--billing-project", "bp"],
        client_factory=factory,
    )

    out = capsys.readouterr().out
    assert code == 0
    assert received == {"token": "t", "billing_project": "bp", "proxy": ""}
    assert "Gathered 4 GCP permissions to check" in out
    assert "1 batch(es) could not be checked" in out
    assert "- a.x" in out
    assert "- b.z" not in out
    assert len(client.calls) == 2


def test_downloads_catalog_when_no_file(monkeypatch, capsys, fake_client_cls):
    monkeypatch.setattr(BFMyGCPPerms, "download_gcp_permissions", lambda: ["z.a", "y.b", "z.a"])
    client = fake_client_cls(held={"y.b"})

    code = BFMyGCPPerms.main(["--organization", "42", "--token", "t", "--verbose"], client_factory=lambda *a, **kw: client)

    out = capsys.readouterr().out
    assert code == 0
    assert "Found: ['y.b']" in out
    assert "- y.b" in out
    assert [(t.resource_name, perms) for t, perms in client.calls] == [("organizations/42", ["y.b", "z.a"])]


def test_proxy_without_pysocks_exits_before_scanning(monkeypatch, capsys, perms_file):
    monkeypatch.setattr(auth.httplib2, "socks", None)

    code = BFMyGCPPerms.main(["--project", "p", "--token", "t", "--permissions-file", perms_file, "--proxy", "127.0.0.1:8080"])

    assert code == 1
    assert "PySocks" in capsys.readouterr().out


def test_main_leaves_stdout_alone(perms_file, fake_client_cls):
    stdout = sys.stdout

    for _ in range(2):
        BFMyGCPPerms.main(["--project", "p", "--token", "t", "--permissions-file", perms_file],
                          client_factory=lambda *a, **kw: fake_client_cls())

    assert sys.stdout is stdout
