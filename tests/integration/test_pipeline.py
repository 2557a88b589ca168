from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson
import pytest
import yaml

from mdregistry.config import Config
from mdregistry.enums import OutputFormat
from mdregistry.exceptions import (
    CircuitOpenError,
    TemplateFileNotFoundError,
    ValidationError,
)
from mdregistry.files import LocalFileSystem
from mdregistry.pipeline import (
    RegistryPipeline,
    SourceDocument,
    collect_documents,
    flatten_document,
    infer_output_format,
    schema_defaults,
)
from mdregistry.schema import SchemaDefinition, load_schema
from mdregistry.templating import SingleTemplate

if TYPE_CHECKING:
    from tests.conftest import RecordingLogger

COMMANDS_BY_FILE = {
    "a-meta.md": [("meta", "init"), ("spec", "create")],
    "b-git.md": [("git", "commit"), ("git", "push")],
    "c-build.md": [("build", "run"), ("debug", "trace"), ("spec", "check")],
}


def registry_schema(**root: Any) -> dict[str, Any]:
    return {
        "type": "object",
        **root,
        "properties": {
            "version": {"type": "string", "default": "1.0.0"},
            "description": {"type": "string", "default": "Command Registry"},
            "tools": {
                "type": "object",
                "properties": {
                    "commands": {
                        "type": "array",
                        "x-frontmatter-part": True,
                        "x-template": "templates/command.json",
                    },
                    "availableConfigs": {
                        "type": "array",
                        "default": [],
                        "x-derived-from": "tools.commands[].c1",
                        "x-derived-unique": True,
                    },
                },
            },
        },
    }


@pytest.fixture
def project(tmp_path: Path) -> Path:
    docs = tmp_path / "docs"
    docs.mkdir()
    for name, commands in COMMANDS_BY_FILE.items():
        lines = ["---", "tools:", "  commands:"]
        for c1, c2 in commands:
            lines += [f"    - c1: {c1}", f"      c2: {c2}"]
        lines += ["---", "", f"# {name}", ""]
        _ = (docs / name).write_text("\n".join(lines))
    _ = (docs / "notes.md").write_text("# No front matter here\n")

    templates = tmp_path / "templates"
    templates.mkdir()
    _ = (templates / "registry.json").write_text(
        orjson.dumps(
            {
                "version": "{{version}}",
                "description": "{{description}}",
                "availableConfigs": "{{tools.availableConfigs}}",
                "commands": "{@items}",
            }
        ).decode()
    )
    _ = (templates / "command.json").write_text('{"command": "{{c1}} {{c2}}", "n": "{{@index}}"}')
    _ = (templates / "registry.md").write_text(
        "# {{description}} v{{version}}\n\nConfigs: {{tools.availableConfigs}}\n\n{@items}\n"
    )
    _ = (templates / "command.md").write_text("## {{c1}} {{c2}}\n")
    return tmp_path


@pytest.fixture
def pipeline(project: Path) -> RegistryPipeline:
    files = LocalFileSystem(project)
    return RegistryPipeline(Config.from_dict({}), reader=files, writer=files)


def documents_of(project: Path) -> list[SourceDocument]:
    return collect_documents([project / "docs"])


class TestCollectDocuments:
    def test_directory_is_searched_in_sorted_order(self, project: Path) -> None:
        documents = documents_of(project)

        assert [Path(d.path).name for d in documents] == [
            "a-meta.md",
            "b-git.md",
            "c-build.md",
        ]

    def test_skipped_documents_are_logged(
        self, project: Path, recording_logger: RecordingLogger
    ) -> None:
        _ = collect_documents([project / "docs"], recording_logger.logger)

        [entry] = recording_logger.entries("document_skipped")
        assert entry["path"].endswith("notes.md")
        assert entry["level"] == "warning"

    def test_missing_path_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="missing"):
            _ = collect_documents([tmp_path / "missing"])


class TestHelpers:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("out/registry.json", OutputFormat.JSON),
            ("registry.YML", OutputFormat.YAML),
            ("README.md", OutputFormat.MARKDOWN),
            ("registry.txt", None),
        ],
    )
    def test_infer_output_format(self, path: str, expected: OutputFormat | None) -> None:
        assert infer_output_format(path) == expected

    def test_schema_defaults_skip_derived_properties(self) -> None:
        schema = SchemaDefinition.from_dict(registry_schema())

        assert schema_defaults(schema) == {
            "version": "1.0.0",
            "description": "Command Registry",
        }


class TestJsonRegistry:
    def test_builds_registry(self, project: Path, pipeline: RegistryPipeline) -> None:
        schema = SchemaDefinition.from_dict(
            registry_schema(**{"x-template": "templates/registry.json"}), source="schema.json"
        )

        rendered = pipeline.run(schema, documents_of(project), "out/registry.json")

        data = orjson.loads((project / "out" / "registry.json").read_bytes())
        assert rendered.format is OutputFormat.JSON
        assert data == {
            "version": "1.0.0",
            "description": "Command Registry",
            "availableConfigs": ["meta", "spec", "git", "build", "debug"],
            "commands": [
                {"command": "meta init", "n": 0},
                {"command": "spec create", "n": 1},
                {"command": "git commit", "n": 2},
                {"command": "git push", "n": 3},
                {"command": "build run", "n": 4},
                {"command": "debug trace", "n": 5},
                {"command": "spec check", "n": 6},
            ],
        }

    def test_base_overrides_defaults(self, project: Path, pipeline: RegistryPipeline) -> None:
        schema = SchemaDefinition.from_dict(
            registry_schema(**{"x-template": "templates/registry.json"})
        )

        _ = pipeline.run(
            schema, documents_of(project), "registry.json", base={"version": "2.0.0"}
        )

        data = orjson.loads((project / "registry.json").read_bytes())
        assert data["version"] == "2.0.0"
        assert data["description"] == "Command Registry"

    def test_filter_selects_items(self, project: Path, pipeline: RegistryPipeline) -> None:
        raw = registry_schema(**{"x-template": "templates/registry.json"})
        raw["properties"]["tools"]["properties"]["commands"]["x-jmespath-filter"] = (
            "[?c1 == 'git']"
        )
        schema = SchemaDefinition.from_dict(raw)

        _ = pipeline.run(schema, documents_of(project), "registry.json")

        data = orjson.loads((project / "registry.json").read_bytes())
        assert [c["command"] for c in data["commands"]] == ["git commit", "git push"]
        assert data["availableConfigs"] == ["meta", "spec", "git", "build", "debug"]


class TestOtherFormats:
    def test_markdown_registry(self, project: Path, pipeline: RegistryPipeline) -> None:
        raw = registry_schema(
            **{"x-template": "templates/registry.md", "x-template-items": "templates/command.md"}
        )
        schema = SchemaDefinition.from_dict(raw)

        rendered = pipeline.run(schema, documents_of(project), "REGISTRY.md")

        assert rendered.format is OutputFormat.MARKDOWN
        assert (project / "REGISTRY.md").read_text() == (
            "# Command Registry v1.0.0\n\n"
            "Configs: meta, spec, git, build, debug\n\n"
            "## meta init\n\n## spec create\n\n## git commit\n\n## git push\n\n"
            "## build run\n\n## debug trace\n\n## spec check\n"
        )

    def test_schema_format_wins_over_suffix(
        self, project: Path, pipeline: RegistryPipeline
    ) -> None:
        _ = (project / "templates" / "summary.yaml").write_text(
            "version: '{{version}}'\nconfigs: '{{tools.availableConfigs}}'\n"
        )
        schema = SchemaDefinition.from_dict(
            registry_schema(
                **{"x-template": "templates/summary.yaml", "x-template-format": "yaml"}
            )
        )

        rendered = pipeline.run(
            schema,
            documents_of(project),
            "summary.out",
            template_config=SingleTemplate(path="templates/summary.yaml"),
        )

        assert rendered.format is OutputFormat.YAML
        assert yaml.safe_load((project / "summary.out").read_text()) == {
            "version": "1.0.0",
            "configs": ["meta", "spec", "git", "build", "debug"],
        }


class TestFailures:
    def test_no_template_configured(self, project: Path, pipeline: RegistryPipeline) -> None:
        schema = SchemaDefinition.from_dict(registry_schema())

        with pytest.raises(ValidationError, match="No template configured"):
            _ = pipeline.run(schema, documents_of(project), "registry.json")

    def test_missing_template(self, project: Path, pipeline: RegistryPipeline) -> None:
        schema = SchemaDefinition.from_dict(
            registry_schema(**{"x-template": "templates/missing.json"})
        )

        with pytest.raises(TemplateFileNotFoundError, match="missing.json"):
            _ = pipeline.run(schema, documents_of(project), "registry.json")

        assert not (project / "registry.json").exists()

    def test_breaker_opens_on_bad_datasets(self, project: Path) -> None:
        files = LocalFileSystem(project)
        pipeline = RegistryPipeline(
            Config.from_dict({"aggregation": {"failure_threshold": 2}}),
            reader=files,
            writer=files,
        )
        schema = SchemaDefinition.from_dict(
            registry_schema(**{"x-template": "templates/registry.json"})
        )
        bad = [SourceDocument(path=f"{i}.md", frontmatter=["not", "a", "mapping"]) for i in range(2)]  # pyright: ignore[reportArgumentType]

        with pytest.raises(CircuitOpenError):
            _ = pipeline.run(schema, bad, "registry.json")


class TestSchemaFile:
    def test_yaml_schema_file(self, project: Path, pipeline: RegistryPipeline) -> None:
        schema_path = project / "schema.yaml"
        _ = schema_path.write_text(
            yaml.safe_dump(registry_schema(**{"x-template": "templates/registry.json"}))
        )

        schema = load_schema(schema_path)
        _ = pipeline.run(schema, documents_of(project), "registry.json")

        assert orjson.loads((project / "registry.json").read_bytes())["version"] == "1.0.0"


class TestFlattenArrays:
    @pytest.fixture
    def traceability_schema(self) -> SchemaDefinition:
        return SchemaDefinition.from_dict(
            {
                "type": "object",
                "properties": {
                    "traceability": {
                        "type": "array",
                        "x-frontmatter-part": True,
                        "x-flatten-arrays": "traceability",
                    },
                    "ids": {"type": "array", "x-derived-from": "traceability[]"},
                },
            }
        )

    def test_items_are_flattened(
        self, traceability_schema: SchemaDefinition, pipeline: RegistryPipeline
    ) -> None:
        documents = [
            SourceDocument(
                path="req.md",
                frontmatter={
                    "traceability": [
                        "REQ-001",
                        ["REQ-002", "REQ-003"],
                        "REQ-004",
                        [["REQ-005"], "REQ-006"],
                    ]
                },
            ),
            SourceDocument(path="single.md", frontmatter={"traceability": "REQ-007"}),
        ]

        items = pipeline.collect_items(traceability_schema, documents)

        assert items == ["REQ-001", "REQ-002", "REQ-003", "REQ-004", "REQ-005", "REQ-006"]

    def test_derived_values_see_flattened_arrays(
        self, traceability_schema: SchemaDefinition, tmp_path: Path
    ) -> None:
        _ = (tmp_path / "main.json").write_text('{"ids": "{{ids}}"}')
        files = LocalFileSystem(tmp_path)
        pipeline = RegistryPipeline(Config.from_dict({}), reader=files, writer=files)
        documents = [
            SourceDocument(path="a.md", frontmatter={"traceability": ["A", ["B", ["C"]]]})
        ]

        _ = pipeline.run(
            traceability_schema, documents, "out.json", template_config=SingleTemplate("main.json")
        )

        assert orjson.loads((tmp_path / "out.json").read_bytes()) == {"ids": ["A", "B", "C"]}

    def test_flatten_document_leaves_input_untouched(self) -> None:
        data = {"meta": {"refs": [["a"], "b"]}, "other": [["x"]]}

        result = flatten_document(data, ["meta.refs", "missing.path", "other.deep"])

        assert result == {"meta": {"refs": ["a", "b"]}, "other": [["x"]]}
        assert data == {"meta": {"refs": [["a"], "b"]}, "other": [["x"]]}

    def test_non_array_target_is_unchanged(self) -> None:
        assert flatten_document({"t": "REQ-1"}, ["t"]) == {"t": "REQ-1"}
