"""Tests for the cranlike command-line interface."""

import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from cranlike.cli import main
from cranlike.packages import (
    CandidateFailure,
    FailureReason,
    PackageDescription,
    PackageNotFoundError,
    RepositoryConnectionError,
    RPackage,
)

ARCHIVE_URL = "https://cran.r-project.org/src/contrib/Archive/geosphere/geosphere_1.0.0.tar.gz"
GEOSPHERE = PackageDescription(
    package="geosphere",
    version="1.0.0",
    title="Spherical Trigonometry",
    licences=("GPL (>= 3)",),
    md5sum="5d7ef3b7a04d0c2d5f8c4a6e2cbd54a1",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from user configuration."""
    for name in ("CRANLIKE_CONFIG", "CRANLIKE_REPO_URL", "CRANLIKE_USER", "CRANLIKE_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    root.setLevel(level)
    root.handlers = handlers


@pytest.fixture
def mock_repository():
    """Patch CranLikeRepository in the CLI module."""
    with patch("cranlike.cli.CranLikeRepository") as mock_repo_class:
        mock_instance = MagicMock()
        mock_instance.repo_url = "https://cran.r-project.org"
        mock_repo_class.from_config.return_value = mock_instance
        yield mock_repo_class


class TestCLILatest:
    """Tests for the 'cranlike latest' command."""

    def test_latest_prints_versions(self, mock_repository, capsys):
        """Test printing every matching index record."""
        repo = mock_repository.from_config.return_value
        repo.get_latest_package_version.return_value = [GEOSPHERE]

        main(["latest", "geosphere"])

        repo.get_latest_package_version.assert_called_once_with("geosphere")
        assert capsys.readouterr().out.strip() == "geosphere 1.0.0"

    def test_latest_not_found(self, mock_repository, capsys):
        """Test exit code 1 when the package is not in the index."""
        mock_repository.from_config.return_value.get_latest_package_version.return_value = []

        with pytest.raises(SystemExit) as exc_info:
            main(["latest", "nope"])

        assert exc_info.value.code == 1
        assert "nope is not listed" in capsys.readouterr().err

    def test_latest_connection_error(self, mock_repository, capsys):
        """Test exit code 1 when the repository is unreachable."""
        mock_repository.from_config.return_value.get_latest_package_version.side_effect = RepositoryConnectionError(
            "https://not-valid-cran.org/src/contrib/PACKAGES.gz", OSError("DNS failure")
        )

        with pytest.raises(SystemExit) as exc_info:
            main(["latest", "A3"])

        assert exc_info.value.code == 1
        assert "Repository unreachable" in capsys.readouterr().err

    def test_flags_override_config(self, mock_repository):
        """Test that command-line flags reach the repository config."""
        mock_repository.from_config.return_value.get_latest_package_version.return_value = [GEOSPHERE]

        main(["latest", "geosphere", "--repo", "https://nexus.example.com/cran", "-u", "me", "--password", "pw"])

        config = mock_repository.from_config.call_args[0][0]
        assert config.repo_url == "https://nexus.example.com/cran"
        assert config.user == "me"
        assert config.password == "pw"

    def test_bad_config_file(self, mock_repository, tmp_path):
        """Test exit code 2 for a missing configuration file."""
        with pytest.raises(SystemExit) as exc_info:
            main(["latest", "geosphere", "--config", str(tmp_path / "missing.ini")])

        assert exc_info.value.code == 2


class TestCLIResolve:
    """Tests for the 'cranlike resolve' command."""

    def test_resolve_prints_summary(self, mock_repository, capsys):
        """Test the resolved package summary."""
        repo = mock_repository.from_config.return_value
        repo.resolve_package.return_value = RPackage(GEOSPHERE, ARCHIVE_URL)

        main(["resolve", "geosphere", "1.0.0"])

        repo.resolve_package.assert_called_once_with("geosphere", "1.0.0")
        out = capsys.readouterr().out
        assert "Package:     geosphere" in out
        assert f"Source:      {ARCHIVE_URL}" in out

    def test_resolve_not_found(self, mock_repository, capsys):
        """Test exit code 1 with the aggregated failure message."""
        failures = [CandidateFailure(f"https://r.example.org/{i}.tar.gz", FailureReason.UNAVAILABLE, "404") for i in range(3)]
        mock_repository.from_config.return_value.resolve_package.side_effect = PackageNotFoundError(failures)

        with pytest.raises(SystemExit) as exc_info:
            main(["resolve", "not-valid-package", "0.0.0"])

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "Package not found" in err
        assert "Failed to get package's source archive from" in err


class TestCLIDownload:
    """Tests for the 'cranlike download' command."""

    def test_download_verifies_checksum_from_index(self, mock_repository, tmp_path):
        """Test that the index MD5 is passed to the downloader."""
        repo = mock_repository.from_config.return_value
        package = RPackage(GEOSPHERE, ARCHIVE_URL)
        repo.resolve_package.return_value = package
        repo.get_latest_package_version.return_value = [GEOSPHERE]

        with patch("cranlike.cli.PackageDownloader") as mock_downloader_class:
            downloader = mock_downloader_class.return_value
            downloader.download_package.return_value = tmp_path / "geosphere_1.0.0.tar.gz"

            main(["download", "geosphere", "1.0.0", "-d", str(tmp_path)])

        mock_downloader_class.assert_called_once_with(repo.transport)
        downloader.download_package.assert_called_once_with(package, Path(tmp_path), checksum=GEOSPHERE.md5sum)

    def test_download_without_index_match(self, mock_repository, tmp_path):
        """Test that no checksum is used when the index lists another version."""
        repo = mock_repository.from_config.return_value
        repo.resolve_package.return_value = RPackage(GEOSPHERE, ARCHIVE_URL)
        newer = PackageDescription(package="geosphere", version="1.5-14", md5sum="abc")
        repo.get_latest_package_version.return_value = [newer]

        with patch("cranlike.cli.PackageDownloader") as mock_downloader_class:
            mock_downloader_class.return_value.download_package.return_value = tmp_path / "x.tar.gz"
            main(["download", "geosphere", "1.0.0", "-d", str(tmp_path)])

        kwargs = mock_downloader_class.return_value.download_package.call_args.kwargs
        assert kwargs["checksum"] is None

    def test_download_no_verify(self, mock_repository, tmp_path):
        """Test that --no-verify skips the index lookup."""
        repo = mock_repository.from_config.return_value
        repo.resolve_package.return_value = RPackage(GEOSPHERE, ARCHIVE_URL)

        with patch("cranlike.cli.PackageDownloader") as mock_downloader_class:
            mock_downloader_class.return_value.download_package.return_value = tmp_path / "x.tar.gz"
            main(["download", "geosphere", "1.0.0", "-d", str(tmp_path), "--no-verify"])

        repo.get_latest_package_version.assert_not_called()


class TestCLIMisc:
    """Tests for general CLI behavior."""

    def test_no_command_prints_help(self, capsys):
        """Test that running without a command shows help."""
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 0
        assert "latest" in capsys.readouterr().out

    def test_version(self, capsys):
        """Test --version output."""
        with pytest.raises(SystemExit):
            main(["--version"])

        assert "cranlike 0.1.0" in capsys.readouterr().out

