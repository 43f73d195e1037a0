"""
Shared fixtures.

``fake_aws`` installs a small executable standing in for the AWS CLI. It
logs every invocation as a JSON line and answers the three commands the
tool issues from environment variables set by the test.
"""

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

FAKE_AWS_SCRIPT = """#!{python}
import json
import os
import sys

args = sys.argv[1:]
with open(os.environ["FAKE_AWS_LOG"], "a") as f:
    f.write(json.dumps(args) + "\\n")

if args[:2] == ["s3", "sync"]:
    for line in json.loads(os.environ.get("FAKE_AWS_SYNC_LINES", "[]")):
        print(line, flush=True)
    sys.exit(int(os.environ.get("FAKE_AWS_SYNC_STATUS", "0")))

if args[:2] == ["s3api", "list-objects-v2"]:
    sys.stdout.write(os.environ.get("FAKE_AWS_LISTING", ""))
    sys.exit(int(os.environ.get("FAKE_AWS_LIST_STATUS", "0")))

if args[:2] == ["s3", "cp"]:
    prefix = "(dryrun) " if "--dryrun" in args else ""
    print(prefix + "upload: " + args[2] + " to " + args[3])
    sys.exit(0)

print("unknown command: " + " ".join(args), file=sys.stderr)
sys.exit(255)
"""


@dataclass
class FakeAws:
    executable: Path
    log: Path
    monkeypatch: pytest.MonkeyPatch

    def calls(self) -> list[list[str]]:
        if not self.log.exists():
            return []
        return [json.loads(line) for line in self.log.read_text().splitlines()]

    def commands(self, *prefix: str) -> list[list[str]]:
        return [c for c in self.calls() if c[: len(prefix)] == list(prefix)]

    def set_sync_output(self, lines: list[str], status: int = 0) -> None:
        self.monkeypatch.setenv("FAKE_AWS_SYNC_LINES", json.dumps(lines))
        self.monkeypatch.setenv("FAKE_AWS_SYNC_STATUS", str(status))

    def set_listing(self, objects: list[tuple[str, str]] | None = None, *, raw: str | None = None, status: int = 0):
        if raw is None:
            raw = json.dumps({"Contents": [{"Key": k, "ETag": e} for k, e in objects or []]})
        self.monkeypatch.setenv("FAKE_AWS_LISTING", raw)
        self.monkeypatch.setenv("FAKE_AWS_LIST_STATUS", str(status))


@pytest.fixture
def fake_aws(tmp_path, monkeypatch) -> FakeAws:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    executable = bin_dir / "aws"
    executable.write_text(FAKE_AWS_SCRIPT.replace("{python}", sys.executable))
    executable.chmod(0o755)

    log = tmp_path / "aws-calls.jsonl"
    monkeypatch.setenv("FAKE_AWS_LOG", str(log))
    fake = FakeAws(executable=executable, log=log, monkeypatch=monkeypatch)
    fake.set_sync_output([])
    fake.set_listing([])
    return fake


@pytest.fixture
def site_dir(tmp_path) -> Path:
    """A local directory with a few files to sync."""
    www = tmp_path / "www"
    www.mkdir()
    (www / "index.html").write_text("<h1>hello</h1>")
    (www / "a.txt").write_bytes(b"")
    (www / "b.txt").write_text("real content")
    return www


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    """Default output files (urls.txt) land in the test's tmp dir."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("S3SYNC_"):
            monkeypatch.delenv(name)
