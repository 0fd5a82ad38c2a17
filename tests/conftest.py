import os
import shutil
import subprocess
import pytest
import tempfile
from pathlib import Path

from backuptree.errors import ArchiverError
from backuptree.naming import archive_name, encode_level


# ---- Individual fixtures for flexible test composition ----

@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def destination(temp_dir):
    """Create an empty backup destination."""
    destination = temp_dir / "backups"
    os.makedirs(destination)
    return destination


@pytest.fixture
def source_dir(temp_dir):
    """Create a source directory with test files."""
    source_dir = temp_dir / "source"
    os.makedirs(source_dir)
    create_test_files(source_dir)
    return source_dir


@pytest.fixture
def archiver():
    """An archiver that records calls instead of running tar."""
    return FakeArchiver()


# ---- Base test class for inheritance-based testing ----

class TestBase:
    """Base class for backuptree tests providing an isolated working directory."""

    def setUp(self):
        """
        Set up the test environment.

        This method:
        1. Creates a temporary directory
        2. Sets up source, destination and restore directories
        3. Creates test files in the source directory
        """
        self.temp_dir = tempfile.TemporaryDirectory()
        self.working_dir = Path(self.temp_dir.name)

        self.source_dir = self.working_dir / "source"
        self.destination = self.working_dir / "backups"
        self.restore_dir = self.working_dir / "restore"
        os.makedirs(self.source_dir)
        os.makedirs(self.destination)

        create_test_files(self.source_dir)

    def tearDown(self):
        """Clean up the temporary directory."""
        try:
            self.temp_dir.cleanup()
        except (PermissionError, OSError) as e:
            print(f"Warning: Could not clean up temporary directory: {e}")

    @pytest.fixture(autouse=True)
    def _setup_teardown_fixture(self):
        """
        Pytest fixture to automatically call setUp and tearDown.

        This fixture is automatically used by all test methods in classes
        that inherit from TestBase.
        """
        self.setUp()
        yield
        self.tearDown()


# ---- Helpers ----

class FakeArchiver:
    """
    Stand-in for TarArchiver.

    create() writes a small archive file and appends to the snapshot file the
    way tar would update it; extract() records the archive in the target.
    Every call is kept in ``calls``.
    """

    def __init__(self, fail_with=None):
        self.calls = []
        self.fail_with = fail_with

    def create(self, source, archive_path, snapshot_path, compression):
        self.calls.append(("create", Path(source), Path(archive_path), Path(snapshot_path), compression))
        if self.fail_with is not None:
            raise ArchiverError(self.fail_with, "simulated failure")
        Path(archive_path).write_text(f"archive of {source}\n")
        with open(snapshot_path, "a") as f:
            f.write(f"state of {source}\n")

    def extract(self, archive_path, target, compression):
        self.calls.append(("extract", Path(archive_path), Path(target), compression))
        if self.fail_with is not None:
            raise ArchiverError(self.fail_with, "simulated failure")
        with open(Path(target) / "extracted.log", "a") as f:
            f.write(f"{archive_path}\n")


def create_test_files(directory, count=5):
    """Create test files in the specified directory."""
    for i in range(1, count):
        with open(directory / f"file_{i}.txt", "w") as f:
            f.write(f"Content of file {i}")

    with open(directory / "binary.bin", "wb") as f:
        f.write(os.urandom(1024))


def make_backup(directory, level, compression="gzip"):
    """Lay out a backup directory by hand: one archive and one snapshot file."""
    directory = Path(directory)
    os.makedirs(directory, exist_ok=True)
    (directory / archive_name(compression)).write_bytes(b"archive")
    (directory / encode_level(level)).write_text("snapshot")
    return directory


def make_chain(root, names):
    """
    Lay out nested backups, one per name, the first being the full backup.

    Returns:
        List[Path]: The backup directories, level 0 first
    """
    directories = []
    current = Path(root)
    for level, name in enumerate(names):
        current = make_backup(current / name, level)
        directories.append(current)
    return directories


def gnu_tar_available():
    tar = shutil.which("tar")
    if tar is None:
        return False
    try:
        result = subprocess.run([tar, "--version"], capture_output=True, text=True)
    except OSError:
        return False
    return "GNU tar" in result.stdout


requires_gnu_tar = pytest.mark.skipif(not gnu_tar_available(), reason="GNU tar is not available")
