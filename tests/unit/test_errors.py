"""Tests for error handling paths."""

import json
import tempfile
from pathlib import Path

import pytest

from calltrace.core.exceptions import (
    CalltraceError,
    ParseError,
    ProgramLoadError,
    RunNotFoundError,
    StorageError,
)
from calltrace.core.program import PythonProgramLoader, load_manifest, load_program
from calltrace.core.storage import RunRepository, get_default_db_path
from calltrace.languages.python import PythonParser


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def repository(temp_dir: Path):
    """Create a repository for testing."""
    with RunRepository(get_default_db_path(temp_dir)) as repo:
        yield repo


class TestParserErrors:
    """Tests for parser error handling."""

    def test_parse_syntax_error(self, temp_dir: Path) -> None:
        """Test that syntax errors raise ParseError."""
        bad_code = """
def broken(
    # Missing closing paren and colon
"""
        file_path = temp_dir / "bad_syntax.py"
        file_path.write_text(bad_code)

        parser = PythonParser()
        with pytest.raises(ParseError) as exc_info:
            parser.parse(file_path)

        assert "Syntax error" in str(exc_info.value)

    def test_parse_encoding_error(self, temp_dir: Path) -> None:
        """Test that encoding errors raise ParseError."""
        file_path = temp_dir / "bad_encoding.py"
        # Write invalid UTF-8 bytes
        file_path.write_bytes(b"\xff\xfe invalid utf-8 \x80\x81")

        parser = PythonParser()
        with pytest.raises(ParseError) as exc_info:
            parser.parse(file_path)

        assert "Cannot read" in str(exc_info.value)

    def test_parse_empty_file(self, temp_dir: Path) -> None:
        """Test that empty files parse to a module with no methods."""
        file_path = temp_dir / "empty.py"
        file_path.write_text("")

        parser = PythonParser()
        result = parser.parse(file_path)

        assert [c.qualified_name for c in result.classes] == ["empty"]
        assert result.methods == []


class TestLoaderErrors:
    """Tests for program loading error handling."""

    def test_missing_location(self, temp_dir: Path) -> None:
        """Test that a missing location raises ProgramLoadError."""
        with pytest.raises(ProgramLoadError) as exc_info:
            load_program(temp_dir / "nowhere")

        assert "does not exist" in str(exc_info.value)

    def test_unsupported_location(self, temp_dir: Path) -> None:
        """Test that an unsupported file type raises ProgramLoadError."""
        file_path = temp_dir / "notes.txt"
        file_path.write_text("hello")

        with pytest.raises(ProgramLoadError):
            load_program(file_path)

    def test_single_file_with_syntax_error(self, temp_dir: Path) -> None:
        """Test that a broken single-file program is a setup failure."""
        file_path = temp_dir / "bad.py"
        file_path.write_text("def broken(")

        with pytest.raises(ProgramLoadError):
            load_program(file_path)

    def test_load_directory_collects_errors(self, temp_dir: Path) -> None:
        """Test that load_directory collects errors instead of raising."""
        # Create one good file and one bad file
        (temp_dir / "good.py").write_text("def foo(): pass")
        (temp_dir / "bad.py").write_text("def broken(")

        program, stats = PythonProgramLoader().load_directory(temp_dir)

        # One file loaded successfully, one had an error
        assert stats.files == 1
        assert len(stats.errors) == 1
        assert "Syntax error" in stats.errors[0]
        assert program.find_class("good") is not None

    def test_deeply_nested_file_is_collected(self, temp_dir: Path) -> None:
        """Test that a file too deep for the parser is skipped, not fatal."""
        (temp_dir / "ok.py").write_text("def fine(): pass")
        terms = " + ".join(["f(1)"] * 600)
        (temp_dir / "big.py").write_text(f"def f(x):\n    return {terms}\n")

        program, stats = load_program(temp_dir)

        assert program.find_class("ok") is not None
        assert stats.files == 1
        assert len(stats.errors) == 1
        assert "big.py" in stats.errors[0]

    def test_nested_parse_failure_is_parse_error(self, temp_dir: Path) -> None:
        """Test that exhausting the recursion limit raises ParseError."""
        file_path = temp_dir / "huge.py"
        terms = " + ".join(["f(1)"] * 10_000)
        file_path.write_text(f"x = {terms}\n")

        with pytest.raises(ParseError) as exc_info:
            PythonParser().parse(file_path)

        assert "huge.py" in str(exc_info.value)

    def test_load_directory_excludes_patterns(self, temp_dir: Path) -> None:
        """Test that exclude patterns work."""
        (temp_dir / "include.py").write_text("def included(): pass")
        tests_dir = temp_dir / "tests"
        tests_dir.mkdir()
        (tests_dir / "test_something.py").write_text("def test_excluded(): pass")

        program, stats = PythonProgramLoader(["tests"]).load_directory(temp_dir)

        # Only include.py should be loaded
        assert stats.files == 1
        assert stats.skipped == 1
        assert program.find_class("tests.test_something") is None

    def test_hidden_and_default_excludes(self, temp_dir: Path) -> None:
        """Test that hidden directories and virtualenvs are skipped."""
        (temp_dir / "main.py").write_text("def main(): pass")
        for name in (".git", "venv", "__pycache__"):
            (temp_dir / name).mkdir()
            (temp_dir / name / "mod.py").write_text("def hidden(): pass")

        _, stats = PythonProgramLoader().load_directory(temp_dir)

        assert stats.files == 1
        assert stats.skipped == 3


class TestManifestErrors:
    """Tests for manifest validation."""

    def write_manifest(self, temp_dir: Path, data: object) -> Path:
        file_path = temp_dir / "program.json"
        file_path.write_text(json.dumps(data))
        return file_path

    def test_invalid_json(self, temp_dir: Path) -> None:
        """Test that malformed JSON raises ProgramLoadError."""
        file_path = temp_dir / "program.json"
        file_path.write_text("{not json")

        with pytest.raises(ProgramLoadError) as exc_info:
            load_manifest(file_path)

        assert "Invalid manifest" in str(exc_info.value)

    def test_missing_classes(self, temp_dir: Path) -> None:
        """Test that a manifest without a classes list is rejected."""
        with pytest.raises(ProgramLoadError):
            load_manifest(self.write_manifest(temp_dir, {"methods": []}))

    def test_method_without_name(self, temp_dir: Path) -> None:
        """Test that the error names the offending entry."""
        data = {"classes": [{"name": "A", "methods": [{"parameters": []}]}]}

        with pytest.raises(ProgramLoadError) as exc_info:
            load_manifest(self.write_manifest(temp_dir, data))

        assert "classes[0].methods[0].name" in str(exc_info.value)

    def test_bad_kind(self, temp_dir: Path) -> None:
        """Test that unknown class kinds are rejected."""
        data = {"classes": [{"name": "A", "kind": "interface"}]}

        with pytest.raises(ProgramLoadError):
            load_manifest(self.write_manifest(temp_dir, data))

    def test_bad_call_arguments(self, temp_dir: Path) -> None:
        """Test that non-integer argument counts are rejected."""
        data = {
            "classes": [
                {
                    "name": "A",
                    "methods": [{"name": "a", "calls": [{"target": "B.b", "arguments": "2"}]}],
                }
            ]
        }

        with pytest.raises(ProgramLoadError):
            load_manifest(self.write_manifest(temp_dir, data))

    def test_parameters_must_be_strings(self, temp_dir: Path) -> None:
        """Test that parameter types must be strings."""
        data = {"classes": [{"name": "A", "methods": [{"name": "a", "parameters": [1]}]}]}

        with pytest.raises(ProgramLoadError):
            load_manifest(self.write_manifest(temp_dir, data))


class TestStorageErrors:
    """Tests for storage error handling."""

    def test_run_not_found_by_id(self, repository: RunRepository) -> None:
        """Test that getting a nonexistent run raises RunNotFoundError."""
        with pytest.raises(RunNotFoundError) as exc_info:
            repository.runs.get(999)

        assert "999" in str(exc_info.value)

    def test_load_tree_not_found(self, repository: RunRepository) -> None:
        """Test that loading the tree of a nonexistent run raises RunNotFoundError."""
        with pytest.raises(RunNotFoundError):
            repository.load_tree(42)

    def test_find_returns_empty_list(self, repository: RunRepository) -> None:
        """Test that find returns empty list for no matches (not an error)."""
        assert repository.runs.find("nonexistent.Class") == []

    def test_delete_missing_run(self, repository: RunRepository) -> None:
        """Test that deleting a nonexistent run reports False."""
        assert repository.delete_run(7) is False

    def test_unopenable_database(self, temp_dir: Path) -> None:
        """Test that a database path that is a directory raises StorageError."""
        with RunRepository(temp_dir) as repo:
            with pytest.raises(StorageError):
                repo.get_stats()


class TestExceptionHierarchy:
    """Tests for exception class hierarchy."""

    @pytest.mark.parametrize(
        "error_type", [ProgramLoadError, ParseError, RunNotFoundError, StorageError]
    )
    def test_is_calltrace_error(self, error_type: type[Exception]) -> None:
        """Test that every library error inherits from CalltraceError."""
        error = error_type("test")
        assert isinstance(error, CalltraceError)
        assert isinstance(error, Exception)
