"""
dossier — technologies producer

File: src/dossier/producers/technologies.py

Purpose
- Derive the languages, frameworks and tools the author worked with from the git output:
  changed-file extensions and names, infrastructure paths, the repository README and its
  dependency manifests.

Merge rules (per repository)
- README mentions are intersected with file-based languages when both exist; without an
  overlap the file-based set wins; without file evidence the README set is used alone.
- Infrastructure paths and dependency manifests are always added.
- Duplicates collapse by name, keeping the highest confidence.
"""

from __future__ import annotations

import json
import re
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Final

from dossier.constants import (
    GIT_PRODUCER_ID,
    TECHNOLOGIES_PRIORITY,
    TECHNOLOGIES_PRODUCER_ID,
)
from dossier.plugins.base import ProducerDescriptor, ProducerResult
from dossier.producers.base import BuiltinProducer
from dossier.producers.outputs import (
    Confidence,
    GitOutput,
    RepositoryHistory,
    TechnologiesOutput,
    Technology,
    TechnologyCategory,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from dossier.config.schema import DossierConfig
    from dossier.plugins.outputs import DependencyView

_Entry = tuple[str, TechnologyCategory]

CATEGORY_ORDER: Final[tuple[tuple[TechnologyCategory, str], ...]] = (
    ("language", "Languages"),
    ("framework", "Frameworks"),
    ("library", "Libraries"),
    ("database", "Databases"),
    ("cloud", "Cloud"),
    ("infrastructure", "Infrastructure"),
    ("tool", "Tools"),
)

_CONFIDENCE_RANK: Final[dict[str, int]] = {"high": 3, "medium": 2, "low": 1}

README_NAMES: Final[tuple[str, ...]] = (
    "README.md",
    "readme.md",
    "README.rst",
    "README.txt",
    "readme.txt",
    "README",
)

EXTENSION_TECHNOLOGIES: Final[dict[str, _Entry]] = {
    "ts": ("TypeScript", "language"),
    "tsx": ("TypeScript", "language"),
    "js": ("JavaScript", "language"),
    "jsx": ("JavaScript", "language"),
    "mjs": ("JavaScript", "language"),
    "cjs": ("JavaScript", "language"),
    "py": ("Python", "language"),
    "java": ("Java", "language"),
    "go": ("Go", "language"),
    "rs": ("Rust", "language"),
    "rb": ("Ruby", "language"),
    "php": ("PHP", "language"),
    "cs": ("C#", "language"),
    "kt": ("Kotlin", "language"),
    "swift": ("Swift", "language"),
    "cpp": ("C++", "language"),
    "cc": ("C++", "language"),
    "hpp": ("C++", "language"),
    "c": ("C", "language"),
    "h": ("C", "language"),
    "scala": ("Scala", "language"),
    "sh": ("Shell", "language"),
    "html": ("HTML", "language"),
    "css": ("CSS", "language"),
    "scss": ("Sass", "language"),
    "vue": ("Vue.js", "framework"),
    "svelte": ("Svelte", "framework"),
    "sql": ("SQL", "database"),
    "graphql": ("GraphQL", "tool"),
    "gql": ("GraphQL", "tool"),
    "prisma": ("Prisma", "library"),
    "tf": ("Terraform", "infrastructure"),
}

FILENAME_TECHNOLOGIES: Final[dict[str, _Entry]] = {
    "dockerfile": ("Dockerfile", "language"),
    "makefile": ("Makefile", "language"),
    "cmakelists.txt": ("CMake", "language"),
    "gemfile": ("Ruby", "language"),
    "rakefile": ("Ruby", "language"),
    "jenkinsfile": ("Groovy", "language"),
}

README_PATTERNS: Final[tuple[tuple[re.Pattern[str], str, TechnologyCategory], ...]] = tuple(
    (re.compile(pattern, re.IGNORECASE), name, category)
    for pattern, name, category in (
        (r"\b(typescript|ts)\b", "TypeScript", "language"),
        (r"\b(javascript|js)\b", "JavaScript", "language"),
        (r"\bpython\b", "Python", "language"),
        (r"\bjava\b(?!script)", "Java", "language"),
        (r"\bgolang\b|\bgo\b", "Go", "language"),
        (r"\brust\b", "Rust", "language"),
        (r"\bruby\b", "Ruby", "language"),
        (r"\bkotlin\b", "Kotlin", "language"),
        (r"\bswift\b", "Swift", "language"),
        (r"c\+\+|\bcpp\b", "C++", "language"),
        (r"c#|\bcsharp\b", "C#", "language"),
        (r"\bphp\b", "PHP", "language"),
        (r"\bscala\b", "Scala", "language"),
        (r"\breact\b", "React", "framework"),
        (r"\bvue\.?js\b|\bvuejs\b", "Vue.js", "framework"),
        (r"\bangular\b", "Angular", "framework"),
        (r"\bsvelte\b", "Svelte", "framework"),
        (r"\bnext\.?js\b", "Next.js", "framework"),
        (r"\bnuxt\.?js\b", "Nuxt.js", "framework"),
        (r"\bexpress\.?js\b", "Express.js", "framework"),
        (r"\bnest\.?js\b", "NestJS", "framework"),
        (r"\bfastify\b", "Fastify", "framework"),
        (r"\bdjango\b", "Django", "framework"),
        (r"\bflask\b", "Flask", "framework"),
        (r"\bfastapi\b", "FastAPI", "framework"),
        (r"\bruby on rails\b|\brails\b", "Ruby on Rails", "framework"),
        (r"\bspring boot\b|\bspringboot\b", "Spring Boot", "framework"),
        (r"\blaravel\b", "Laravel", "framework"),
        (r"\bpostgres(?:ql)?\b", "PostgreSQL", "database"),
        (r"\bmysql\b", "MySQL", "database"),
        (r"\bmongo(?:db)?\b", "MongoDB", "database"),
        (r"\bredis\b", "Redis", "database"),
        (r"\belasticsearch\b", "Elasticsearch", "database"),
        (r"\bdynamodb\b", "DynamoDB", "database"),
        (r"\bsqlite\b", "SQLite", "database"),
        (r"\baws\b|amazon web services", "AWS", "cloud"),
        (r"\bazure\b", "Azure", "cloud"),
        (r"\bgcp\b|google cloud", "Google Cloud", "cloud"),
        (r"\bvercel\b", "Vercel", "cloud"),
        (r"\bheroku\b", "Heroku", "cloud"),
        (r"\bdocker\b", "Docker", "infrastructure"),
        (r"\bkubernetes\b|\bk8s\b", "Kubernetes", "infrastructure"),
        (r"\bterraform\b", "Terraform", "infrastructure"),
        (r"\bansible\b", "Ansible", "infrastructure"),
        (r"\bhelm\b", "Helm", "infrastructure"),
        (r"\bnginx\b", "Nginx", "infrastructure"),
        (r"\bgithub actions\b", "GitHub Actions", "infrastructure"),
        (r"\bjenkins\b", "Jenkins", "infrastructure"),
        (r"\bgraphql\b", "GraphQL", "tool"),
        (r"\bgrpc\b", "gRPC", "tool"),
        (r"\bwebpack\b", "Webpack", "tool"),
        (r"\bvite\b", "Vite", "tool"),
        (r"\bjest\b", "Jest", "tool"),
        (r"\bpytest\b", "pytest", "tool"),
        (r"\bplaywright\b", "Playwright", "tool"),
        (r"\bprisma\b", "Prisma", "library"),
        (r"\btailwind", "Tailwind CSS", "library"),
    )
)

NPM_PACKAGES: Final[dict[str, _Entry]] = {
    "react": ("React", "framework"),
    "react-dom": ("React", "framework"),
    "vue": ("Vue.js", "framework"),
    "@angular/core": ("Angular", "framework"),
    "svelte": ("Svelte", "framework"),
    "next": ("Next.js", "framework"),
    "nuxt": ("Nuxt.js", "framework"),
    "express": ("Express.js", "framework"),
    "@nestjs/core": ("NestJS", "framework"),
    "fastify": ("Fastify", "framework"),
    "koa": ("Koa", "framework"),
    "prisma": ("Prisma", "library"),
    "@prisma/client": ("Prisma", "library"),
    "drizzle-orm": ("Drizzle", "library"),
    "typeorm": ("TypeORM", "library"),
    "sequelize": ("Sequelize", "library"),
    "mongoose": ("Mongoose", "library"),
    "graphql": ("GraphQL", "tool"),
    "@apollo/server": ("Apollo GraphQL", "library"),
    "jest": ("Jest", "tool"),
    "vitest": ("Vitest", "tool"),
    "cypress": ("Cypress", "tool"),
    "@playwright/test": ("Playwright", "tool"),
    "webpack": ("Webpack", "tool"),
    "vite": ("Vite", "tool"),
    "esbuild": ("esbuild", "tool"),
    "rollup": ("Rollup", "tool"),
    "tailwindcss": ("Tailwind CSS", "library"),
    "@tanstack/react-query": ("TanStack Query", "library"),
    "@trpc/server": ("tRPC", "library"),
    "zod": ("Zod", "library"),
    "redis": ("Redis", "database"),
    "ioredis": ("Redis", "database"),
    "pg": ("PostgreSQL", "database"),
    "mysql2": ("MySQL", "database"),
    "mongodb": ("MongoDB", "database"),
    "@aws-sdk/client-s3": ("AWS S3", "cloud"),
    "@aws-sdk/client-dynamodb": ("DynamoDB", "database"),
    "@google-cloud/storage": ("Google Cloud Storage", "cloud"),
    "@azure/storage-blob": ("Azure Blob Storage", "cloud"),
}

PYTHON_PACKAGES: Final[dict[str, _Entry]] = {
    "django": ("Django", "framework"),
    "flask": ("Flask", "framework"),
    "fastapi": ("FastAPI", "framework"),
    "sqlalchemy": ("SQLAlchemy", "library"),
    "pytest": ("pytest", "tool"),
    "celery": ("Celery", "library"),
    "boto3": ("AWS SDK", "cloud"),
    "pandas": ("Pandas", "library"),
    "numpy": ("NumPy", "library"),
    "tensorflow": ("TensorFlow", "library"),
    "torch": ("PyTorch", "library"),
    "httpx": ("HTTPX", "library"),
    "pydantic": ("Pydantic", "library"),
}

_REQUIREMENT_NAME_RE: Final[re.Pattern[str]] = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")


class TechnologiesProducer(BuiltinProducer):
    descriptor = ProducerDescriptor(
        identity=TECHNOLOGIES_PRODUCER_ID,
        name="Technologies",
        needs=(GIT_PRODUCER_ID,),
    )
    priority = TECHNOLOGIES_PRIORITY

    def is_eligible(self, config: DossierConfig, deps: DependencyView) -> bool:
        git = deps.get(GitOutput)
        return git is not None and any(True for _ in git.commits())

    def run(self, config: DossierConfig, deps: DependencyView) -> ProducerResult | None:
        git = deps.get(GitOutput)
        if git is None:
            return None

        found: list[Technology] = []
        for repository in git.repositories:
            found.extend(self.detect(repository))
        technologies = deduplicate(found)
        if not technologies:
            return None

        output = TechnologiesOutput(technologies=technologies)
        return self.result(
            output, self.fragment("Technologies", format_technologies_section(technologies))
        )

    def detect(self, repository: RepositoryHistory) -> tuple[Technology, ...]:
        """Technologies for one repository (see the module merge rules)."""

        paths = [change.path for commit in repository.commits for change in commit.files]
        file_techs = detect_from_files(paths)
        infrastructure = tuple(
            tech for tech in detect_from_paths(paths) if tech.category == "infrastructure"
        )

        root = Path(repository.path)
        readme = read_readme(root)
        readme_techs = detect_from_readme(readme) if readme else ()

        if file_techs:
            file_names = {tech.name for tech in file_techs}
            overlap = tuple(tech for tech in readme_techs if tech.name in file_names)
            base = overlap or file_techs
        else:
            base = readme_techs

        dependencies = self._dependency_technologies(root)
        return deduplicate((*base, *dependencies, *infrastructure))

    def _dependency_technologies(self, root: Path) -> tuple[Technology, ...]:
        try:
            return detect_from_manifests(root)
        except (OSError, ValueError) as exc:
            self._logger.warning(
                "dependency_manifest_unreadable",
                repository=str(root),
                error=f"{type(exc).__name__}: {exc}",
            )
            return ()


def detect_from_files(paths: Iterable[str]) -> tuple[Technology, ...]:
    """Languages by well-known filename first, then by extension."""

    found: dict[str, Technology] = {}
    for raw in paths:
        path = PurePosixPath(raw.lower())
        entry = FILENAME_TECHNOLOGIES.get(path.name)
        if entry is None:
            entry = EXTENSION_TECHNOLOGIES.get(path.suffix.lstrip("."))
        if entry is not None and entry[0] not in found:
            found[entry[0]] = Technology(name=entry[0], category=entry[1], source="file")
    return tuple(found.values())


def detect_from_paths(paths: Iterable[str]) -> tuple[Technology, ...]:
    found: dict[str, Technology] = {}

    def add(name: str, category: TechnologyCategory, confidence: Confidence = "high") -> None:
        if name not in found:
            found[name] = Technology(
                name=name,
                category=category,
                source="file",
                confidence=confidence,
            )

    for raw in paths:
        lowered = raw.lower()
        path = PurePosixPath(lowered)
        name = path.name
        suffix = path.suffix.lstrip(".")

        if "dockerfile" in lowered:
            add("Docker", "infrastructure")
        if ".github/workflows" in lowered:
            add("GitHub Actions", "infrastructure")
        if ".gitlab-ci" in lowered:
            add("GitLab CI", "infrastructure")
        if suffix == "tf" or "terraform" in lowered:
            add("Terraform", "infrastructure")
        if (
            "kubernetes" in lowered
            or "k8s" in lowered
            or (suffix in {"yaml", "yml"} and ("deploy" in lowered or "service" in lowered))
        ):
            add("Kubernetes", "infrastructure", "medium")
        if "helm" in lowered or "charts/" in lowered:
            add("Helm", "infrastructure")
        if name in {"serverless.yml", "serverless.yaml"}:
            add("Serverless Framework", "infrastructure")
        if name in {"docker-compose.yml", "docker-compose.yaml", "compose.yaml"}:
            add("Docker Compose", "infrastructure")

        entry = EXTENSION_TECHNOLOGIES.get(suffix)
        if entry is not None:
            add(*entry)
    return tuple(found.values())


def detect_from_readme(text: str) -> tuple[Technology, ...]:
    return tuple(
        Technology(name=name, category=category, source="readme")
        for pattern, name, category in README_PATTERNS
        if pattern.search(text)
    )


def read_readme(root: Path) -> str | None:
    for name in README_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate.read_text(encoding="utf-8", errors="replace")
    return None


def detect_from_manifests(root: Path) -> tuple[Technology, ...]:
    """Technologies named by ``package.json``, ``requirements.txt``, ``go.mod``, ``Cargo.toml``.

    Raises ``OSError`` for unreadable files and ``ValueError`` for malformed JSON.
    """

    found: list[Technology] = []

    package_json = root / "package.json"
    if package_json.is_file():
        manifest = json.loads(package_json.read_text(encoding="utf-8"))
        if isinstance(manifest, dict):
            for section in ("dependencies", "devDependencies"):
                deps = manifest.get(section)
                if isinstance(deps, dict):
                    found.extend(_mapped(deps, NPM_PACKAGES))

    requirements = root / "requirements.txt"
    if requirements.is_file():
        names = []
        for line in requirements.read_text(encoding="utf-8").splitlines():
            match = _REQUIREMENT_NAME_RE.match(line)
            if match and not line.lstrip().startswith("#"):
                names.append(match.group(1).lower())
        found.extend(_mapped(names, PYTHON_PACKAGES))

    if (root / "go.mod").is_file():
        found.append(Technology(name="Go", category="language", source="dependency"))
    if (root / "Cargo.toml").is_file():
        found.append(Technology(name="Rust", category="language", source="dependency"))
    return tuple(found)


def deduplicate(technologies: Iterable[Technology]) -> tuple[Technology, ...]:
    """Collapse by name keeping the highest confidence; first occurrence order is kept."""

    best: dict[str, Technology] = {}
    for tech in technologies:
        current = best.get(tech.name)
        if current is None or (
            _CONFIDENCE_RANK[tech.confidence] > _CONFIDENCE_RANK[current.confidence]
        ):
            best[tech.name] = tech
    return tuple(best.values())


def format_technologies_section(technologies: Sequence[Technology]) -> str:
    lines = ["## Technologies Used", ""]
    for category, heading in CATEGORY_ORDER:
        names = sorted({tech.name for tech in technologies if tech.category == category})
        if names:
            lines.append(f"**{heading}:** {', '.join(names)}")
    lines.append("")
    return "\n".join(lines)


def _mapped(keys: Iterable[str], table: dict[str, _Entry]) -> list[Technology]:
    return [
        Technology(name=table[key][0], category=table[key][1], source="dependency")
        for key in keys
        if key in table
    ]


__all__ = [
    "TechnologiesProducer",
    "deduplicate",
    "detect_from_files",
    "detect_from_manifests",
    "detect_from_paths",
    "detect_from_readme",
    "format_technologies_section",
]
