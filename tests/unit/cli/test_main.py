"""Unit tests for CLI command handling."""

from __future__ import annotations

from cli.main import main
from tests.fixture_paths import fixture_path


def _import_people(db_path: str) -> str:
    main(["--db-path", db_path, "import", str(fixture_path("csv/people.csv"))])
    return "1"


def test_cli_init_prints_store_path(tmp_path, capsys) -> None:
    """CLI init should create the store and print its path."""
    db_path = tmp_path / "store.db"

    exit_code = main(["--db-path", str(db_path), "init"])
    output = capsys.readouterr().out.strip()

    assert exit_code == 0 and output == str(db_path.resolve()) and db_path.exists()


def test_cli_import_prints_dataset_row(tmp_path, capsys) -> None:
    """CLI import should print the new dataset summary."""
    exit_code = main(
        [
            "--db-path",
            str(tmp_path / "store.db"),
            "import",
            str(fixture_path("csv/people.csv")),
            "--name",
            "staff",
        ]
    )
    output = capsys.readouterr().out.strip()

    assert exit_code == 0 and output == "1\t3\t3\tstaff"


def test_cli_page_prints_header_rows_and_summary(tmp_path, capsys) -> None:
    """CLI page should print the header, the rows, and the page position."""
    db_path = str(tmp_path / "store.db")
    dataset_id = _import_people(db_path)
    capsys.readouterr()

    exit_code = main(["--db-path", db_path, "page", dataset_id, "--page", "1", "--page-size", "2"])
    output = capsys.readouterr().out.splitlines()

    assert exit_code == 0 and output == ["name\tage\tcity", "carol\t41\tOslo", "page=1/2 rows=3"]


def test_cli_datasets_lists_imports(tmp_path, capsys) -> None:
    """CLI datasets should list one line per dataset."""
    db_path = str(tmp_path / "store.db")
    _import_people(db_path)
    capsys.readouterr()

    exit_code = main(["--db-path", db_path, "datasets"])
    output = capsys.readouterr().out.splitlines()

    assert exit_code == 0 and output == ["1\t3\t3\tpeople"]


def test_cli_delete_is_idempotent(tmp_path, capsys) -> None:
    """Deleting an unknown dataset should still succeed."""
    exit_code = main(["--db-path", str(tmp_path / "store.db"), "delete", "77"])
    output = capsys.readouterr().out.strip()

    assert exit_code == 0 and output == "deleted 77"


def test_cli_page_missing_dataset_reports_not_found(tmp_path, capsys) -> None:
    """Domain errors should be printed with their kind and exit non-zero."""
    exit_code = main(["--db-path", str(tmp_path / "store.db"), "page", "5"])
    error_output = capsys.readouterr().err

    assert exit_code == 1 and "error[not_found]:" in error_output


def test_cli_import_missing_file_reports_io_error(tmp_path, capsys) -> None:
    """A missing source file should be reported as an io error."""
    exit_code = main(
        ["--db-path", str(tmp_path / "store.db"), "import", str(tmp_path / "absent.csv")]
    )
    error_output = capsys.readouterr().err

    assert exit_code == 1 and "error[io]:" in error_output


def test_cli_import_reject_policy_reports_parse_error(tmp_path, capsys) -> None:
    """A ragged row under the reject policy should fail the import."""
    db_path = str(tmp_path / "store.db")

    exit_code = main(
        [
            "--db-path",
            db_path,
            "import",
            str(fixture_path("csv/short_row.csv")),
            "--ragged-policy",
            "reject",
        ]
    )
    error_output = capsys.readouterr().err
    main(["--db-path", db_path, "datasets"])

    assert exit_code == 1 and "error[parse]:" in error_output and capsys.readouterr().out == ""
