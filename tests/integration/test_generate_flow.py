"""
dossier — end-to-end generation over a real git repository

File: tests/integration/test_generate_flow.py

Purpose
- Drive ``dossier generate`` through ``run_cli`` against a temporary git repository: the
  first-run configuration pass, checkpointing, execution in dependency order, and the
  rendered document.

What this test file should cover
- First run asks every question once and saves decided values (declines included).
- A second run with a complete config asks nothing.
- Sections appear in priority order: language, template, technologies, commits.
- The exported AI prompt carries the language note and the full document.

Functional requirements
- Skipped when the ``git`` binary is unavailable.
- No network usage: GitHub is declined.
"""

from __future__ import annotations

import json
import os
import shutil
import subprocess
from typing import TYPE_CHECKING

import pytest

from dossier.config import DECLINED, ConfigStore, DossierConfig, Present
from dossier.main import ExitCode
from dossier.ui import ScriptedPrompter
from dossier.ui.cli import run_cli

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("git") is None, reason="git binary not available"),
]


def _git(repo: Path, *args: str, env: dict[str, str] | None = None) -> None:
    merged = os.environ.copy()
    merged.setdefault("GIT_TERMINAL_PROMPT", "0")
    merged.setdefault("GIT_CONFIG_NOSYSTEM", "1")
    merged.update(env or {})
    completed = subprocess.run(
        ["git", *args],
        cwd=repo,
        text=True,
        capture_output=True,
        check=False,
        env=merged,
    )
    if completed.returncode != 0:
        detail = completed.stderr.strip() or completed.stdout.strip()
        raise RuntimeError(f"git command failed: git {' '.join(args)}: {detail}")


def _commit(repo: Path, filename: str, contents: str, date: str, message: str) -> None:
    target = repo / filename
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(contents, encoding="utf-8")
    _git(repo, "add", filename)
    identity = {
        "GIT_AUTHOR_NAME": "Dev",
        "GIT_AUTHOR_EMAIL": "dev@example.com",
        "GIT_AUTHOR_DATE": date,
        "GIT_COMMITTER_NAME": "Dev",
        "GIT_COMMITTER_EMAIL": "dev@example.com",
        "GIT_COMMITTER_DATE": date,
    }
    _git(repo, "-c", "commit.gpgsign=false", "commit", "-q", "-m", message, env=identity)


@pytest.fixture
def service_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "billing"
    repo.mkdir()
    _git(repo, "init", "-q")
    _commit(
        repo,
        "app.py",
        "import os\n\n\ndef main():\n    return os.getcwd()\n",
        "2024-02-10T09:00:00+00:00",
        "Add billing entrypoint",
    )
    _commit(
        repo,
        "Dockerfile",
        "FROM python:3.12\nCOPY . /app\nWORKDIR /app\nCMD python app.py\n",
        "2024-03-15T09:00:00+00:00",
        "Containerize billing service",
    )
    return repo


def test_first_run_configures_then_generates(
    tmp_path: Path, service_repo: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config_path = tmp_path / ".dossier.json"
    output = tmp_path / "history.md"
    prompter = ScriptedPrompter(
        [
            "skip",
            "Acme",
            "2024-01-01",
            "2024-12-31",
            str(service_repo),
            "",
            "dev@example.com",
            "",
            "",
            "skip",
        ]
    )

    code = run_cli(
        ["generate", "--config", str(config_path), "-o", str(output)], prompter=prompter
    )

    assert code == ExitCode.SUCCESS, capsys.readouterr().err
    assert prompter.remaining == 0

    saved = json.loads(config_path.read_text(encoding="utf-8"))
    assert saved["company_name"] == "Acme"
    assert saved["repositories"] == [str(service_repo)]
    assert saved["github_token"] == "$declined"
    assert saved["template_content"] == "$declined"
    assert saved["slack_ai_file_path"] == "$declined"

    document = output.read_text(encoding="utf-8")
    assert document.startswith("# Work Experience Data: Acme\n**Period:** 2024-01-01 to 2024-12-31")
    assert "## Resume Format Template" not in document
    positions = [
        document.index(heading)
        for heading in ("## Output Language", "## Technologies Used", "## Code Contributions")
    ]
    assert positions == sorted(positions)
    assert "**Languages:** Dockerfile, Python" in document
    assert "Docker" in document
    assert "### billing\nTotal commits: 2" in document
    assert "- Containerize billing service (+4/-0)" in document

    again = ScriptedPrompter([])
    second = run_cli(
        ["generate", "--config", str(config_path), "-o", str(output)], prompter=again
    )
    assert second == ExitCode.SUCCESS
    assert again.asked == []


def test_saved_config_generates_full_document(
    tmp_path: Path, service_repo: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config_path = tmp_path / ".dossier.json"
    output = tmp_path / "out" / "history.md"
    ConfigStore(config_path).save(
        DossierConfig(
            company_name="Acme",
            start_date="2024-03-01",
            end_date="2024-12-31",
            repositories=(str(service_repo),),
            author_emails=("dev@example.com",),
            github_token=DECLINED,
            template_content=Present("# Jane Doe\n\n## Experience"),
            template_path=DECLINED,
            slack_ai_content=Present("Led the billing migration channel."),
            slack_ai_file_path=DECLINED,
            language="German",
        )
    )

    code = run_cli(
        ["generate", "--config", str(config_path), "-o", str(output)],
        prompter=ScriptedPrompter([]),
    )

    assert code == ExitCode.SUCCESS
    document = output.read_text(encoding="utf-8")
    headings = [
        "# Work Experience Data: Acme",
        "## Output Language",
        "## Resume Format Template",
        "## Technologies Used",
        "## Code Contributions",
        "## Communication & Collaboration (from Slack)",
    ]
    positions = [document.index(heading) for heading in headings]
    assert positions == sorted(positions)
    assert "Generate all content in German" in document
    assert "Add billing entrypoint" not in document
    assert "Containerize billing service" in document

    prompt = (output.parent / "history-prompt.md").read_text(encoding="utf-8")
    assert "Generate all resume\ncontent in **German**." in prompt
    assert prompt.endswith("---\n\n" + document)

    out = capsys.readouterr().out
    assert "Sections generated: 5" in out
    assert "github" in out
