"""
Pytest configuration and shared fixtures for the test suite.
"""

import pytest

from vrcsessions.models.session import WorldSession
from vrcsessions.models.values import Timestamp


WORLD_A = "wrld_4cf554b4-430c-4f8f-b53e-1f294eed230b"
WORLD_B = "wrld_ba913a96-fac4-4048-a062-9aa5db092812"
PLAYER_ID = "usr_3e2f5a1c-2b6d-4a8e-9f0c-1d2e3f4a5b6c"


def log_line(timestamp: str, message: str, level: str = "Log") -> str:
    """Build a log line the way VRChat writes them."""
    return f"{timestamp} {level:<10} -  {message}"


@pytest.fixture
def sample_log_lines():
    """Sample VRChat output_log lines covering every event kind."""
    return [
        log_line("2023.10.08 15:30:00", "VRC Analytics Initialized"),
        log_line("2023.10.08 15:30:01", "[UserInterface] Loading home world"),
        log_line("2023.10.08 15:30:45", f"[Behaviour] Joining {WORLD_A}:12345~region(jp)"),
        log_line("2023.10.08 15:30:45", "[Behaviour] Joining or Creating Room: The Great Pug"),
        log_line("2023.10.08 15:30:50", f"[Behaviour] OnPlayerJoined Alice Smith ({PLAYER_ID})"),
        log_line("2023.10.08 15:31:10", "[Behaviour] OnPlayerJoined Bob"),
        log_line("2023.10.08 15:40:00", f"[Behaviour] OnPlayerLeft Alice Smith ({PLAYER_ID})"),
        log_line("2023.10.08 15:41:00", "[Behaviour] OnPlayerLeftRoom"),
        log_line("2023.10.08 16:00:00", f"[Behaviour] Joining {WORLD_B}:67890~private(usr_x)~nonce(abc)"),
        log_line("2023.10.08 16:00:01", "[Behaviour] Joining or Creating Room: Midnight Rooftop"),
        log_line("2023.10.08 16:30:00", "VRCApplication: HandleApplicationQuit at 1800.5"),
    ]


@pytest.fixture
def sample_log_file(tmp_path, sample_log_lines):
    """Write the sample lines to an output_log file."""
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    path = log_dir / "output_log_2023-10-08_15-30-00.txt"
    path.write_text("\n".join(sample_log_lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def sample_photo_names():
    """Photo filenames around the sample log's sessions."""
    return [
        "VRChat_2023-10-08_15-00-00.000_1920x1080.png",  # before every session
        "VRChat_2023-10-08_15-30-45.000_1920x1080.png",  # exactly at the first join
        "VRChat_2023-10-08_15-45-12.500_3840x2160.png",
        "VRChat_2023-10-08_16-00-00.000_2560x1440.png",  # exactly at the second join
        "VRChat_2023-10-08_17-00-00.000_2560x1440.png",
    ]


@pytest.fixture
def make_session():
    """Factory for WorldSession objects from canonical timestamp text."""

    def _make(joined, left=None, world_id=WORLD_A, world_name="", instance_id="12345"):
        return WorldSession(
            world_id=world_id,
            world_name=world_name,
            instance_id=instance_id,
            joined_at=Timestamp.parse(joined),
            left_at=Timestamp.parse(left) if left else None,
        )

    return _make


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "property: mark test as a hypothesis property test")
