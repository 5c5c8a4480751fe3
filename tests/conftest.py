"""!
@brief Shared fixtures for the Sensor Janitor test suite.
@details Provides in-memory stand-ins for the two host surfaces the cleanup
mutates (the service control manager and the registry) plus a profile whose
cache and install paths live under ``tmp_path``. ``time.sleep`` is replaced for
every test so service polling never blocks.
"""

from __future__ import annotations

import pathlib
import sys
from typing import Any, Dict, Iterable, List, Tuple

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from sensor_janitor import logging_ext, services  # noqa: E402
from sensor_janitor.cleanup import CleanupHost  # noqa: E402
from sensor_janitor.config import CleanupProfile  # noqa: E402
from sensor_janitor.services import ServiceControlError, ServiceStatus  # noqa: E402

GUID = "{6B1E2C4D-1F3A-4B5C-9D8E-7F6A5B4C3D2E}"
OTHER_GUID = "{0A0B0C0D-1111-2222-3333-444455556666}"


class FakeServiceController:
    """!
    @brief Scriptable service control manager.
    @details ``states`` maps existing service names to their current state.
    Names in ``stuck`` ignore stop requests, names in ``undeletable`` ignore
    delete requests and names in ``broken`` fail every query.
    """

    def __init__(
        self,
        states: Dict[str, str] | None = None,
        *,
        stuck: Iterable[str] = (),
        undeletable: Iterable[str] = (),
        broken: Iterable[str] = (),
    ) -> None:
        self.states = dict(states or {})
        self.stuck = set(stuck)
        self.undeletable = set(undeletable)
        self.broken = set(broken)
        self.calls: List[Tuple[str, str]] = []

    def query(self, name: str) -> ServiceStatus:
        self.calls.append(("query", name))
        if name in self.broken:
            raise ServiceControlError(f"access denied querying {name}")
        if name not in self.states:
            return ServiceStatus(name=name, exists=False)
        return ServiceStatus(name=name, exists=True, state=self.states[name])

    def stop(self, name: str) -> None:
        self.calls.append(("stop", name))
        if name in self.states:
            self.states[name] = "STOP_PENDING" if name in self.stuck else "STOPPED"

    def delete(self, name: str) -> None:
        self.calls.append(("delete", name))
        if name not in self.undeletable:
            self.states.pop(name, None)

    def actions(self, kind: str) -> List[str]:
        return [name for action, name in self.calls if action == kind]


class FakeRegistry:
    """!
    @brief Registry store keyed by textual path.
    @details A key exists when it was added explicitly or when any descendant
    exists. ``failing`` paths raise ``PermissionError`` on deletion.
    """

    def __init__(self, failing: Iterable[str] = ()) -> None:
        self.keys: Dict[str, Dict[str, Any]] = {}
        self.failing = set(failing)
        self.deleted: List[str] = []

    def add(self, path: str, **values: Any) -> None:
        self.keys[path] = dict(values)

    def _subtree(self, path: str) -> List[str]:
        prefix = path + "\\"
        return [key for key in self.keys if key == path or key.startswith(prefix)]

    def enumerate_children(self, path: str) -> List[str]:
        if not self._subtree(path):
            raise FileNotFoundError(path)
        prefix = path + "\\"
        names = {key[len(prefix):].split("\\")[0] for key in self.keys if key.startswith(prefix)}
        return sorted(names)

    def read_values(self, path: str) -> Dict[str, Any]:
        return dict(self.keys.get(path, {}))

    def exists(self, path: str) -> bool:
        return bool(self._subtree(path))

    def delete_tree(self, path: str) -> bool:
        if path in self.failing:
            raise PermissionError(f"access denied: {path}")
        subtree = self._subtree(path)
        if not subtree:
            return False
        for key in subtree:
            del self.keys[key]
        self.deleted.append(path)
        return True


@pytest.fixture(autouse=True)
def sleeps(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    recorded: List[float] = []
    monkeypatch.setattr(services.time, "sleep", recorded.append)
    return recorded


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterable[None]:
    yield
    logging_ext.shutdown_logging()


@pytest.fixture
def profile(tmp_path: pathlib.Path) -> CleanupProfile:
    return CleanupProfile(
        cache_root=str(tmp_path / "Package Cache"),
        install_dir=str(tmp_path / "Sensor"),
    )


@pytest.fixture
def fake_services() -> FakeServiceController:
    return FakeServiceController()


@pytest.fixture
def fake_registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def host(fake_services: FakeServiceController, fake_registry: FakeRegistry) -> CleanupHost:
    return CleanupHost(services=fake_services, registry=fake_registry)  # type: ignore[arg-type]


def populate_sensor_host(
    profile: CleanupProfile,
    fake_services: FakeServiceController,
    fake_registry: FakeRegistry,
) -> None:
    """!
    @brief Lay down a typical leftover install on the fakes and on disk.
    """

    fake_services.states.update({"AATPSensor": "RUNNING", "AATPSensorUpdater": "STOPPED"})
    uninstall, wow, _, products, merged, dependencies = profile.registry_roots
    fake_registry.add(profile.registry_path(uninstall, GUID), DisplayName=profile.display_name)
    fake_registry.add(profile.registry_path(uninstall, GUID) + "\\Details", Size=12)
    fake_registry.add(profile.registry_path(products, GUID), ProductName=profile.display_name)
    fake_registry.add(profile.registry_path(merged, GUID), ProductName=profile.display_name)
    fake_registry.add(profile.registry_path(wow, OTHER_GUID), DisplayName="Some Other Product")
    fake_registry.add(profile.registry_path(dependencies, GUID))

    cache = profile.cache_folder(GUID)
    cache.mkdir(parents=True)
    (cache / "sensor.msi").write_bytes(b"msi")
    install = profile.install_path()
    (install / "Bin").mkdir(parents=True)
    (install / "Bin" / "Microsoft.Tri.Sensor.exe").write_bytes(b"exe")
