"""Tests for the hierarchical workspace model and its change events."""

from __future__ import annotations

from pathlib import Path

import pytest

from repomap.workspace import (
    DeltaKind,
    EventType,
    File,
    Folder,
    Project,
    ResourceChangeEvent,
    ResourceDelta,
    ResourceType,
    Workspace,
)


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(tmp_path / "ws")


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class TestProjects:
    def test_create_default_location(self, workspace: Workspace):
        project = workspace.create_project("p")
        assert project.location == workspace.root_dir / "p"
        assert project.exists()
        assert project.is_open()
        assert project.project_relative_path == ""
        assert project.full_path == "/p"

    def test_create_with_location(self, workspace: Workspace, tmp_path: Path):
        project = workspace.create_project("p", tmp_path / "elsewhere")
        assert project.location == (tmp_path / "elsewhere").resolve()
        assert (tmp_path / "elsewhere").is_dir()

    def test_duplicate_rejected(self, workspace: Workspace):
        workspace.create_project("p")
        with pytest.raises(ValueError):
            workspace.create_project("p")

    def test_non_local_project(self, workspace: Workspace):
        project = workspace.create_project("virtual", local=False)
        assert project.location is None
        assert project.exists()
        assert project.get_folder("src").location is None
        assert project.members() == []

    def test_handles_compare_by_path(self, workspace: Workspace):
        project = workspace.create_project("p")
        assert project.get_folder("a/b") == workspace.project("p").get_folder("a/b")
        assert project.get_folder("a") != project.get_file("a")
        assert len({project.get_folder("a"), project.get_folder("a")}) == 1

    def test_parent_chain(self, workspace: Workspace):
        project = workspace.create_project("p")
        folder = project.get_folder("a/b")
        assert folder.parent == project.get_folder("a")
        assert folder.parent.parent == project
        assert project.parent == workspace.root
        assert workspace.root.parent is None

    def test_shared_flag(self, workspace: Workspace):
        project = workspace.create_project("p")
        assert not project.shared
        project.shared = True
        assert project.shared
        project.shared = False
        assert not project.shared

    def test_working_location(self, workspace: Workspace):
        project = workspace.create_project("p")
        area = project.working_location("area")
        assert area.is_dir()
        assert area == workspace.metadata_dir / ".plugins" / "area" / "p"

    def test_closed_project_not_accessible(self, workspace: Workspace):
        project = workspace.create_project("p")
        workspace.close_project(project)
        assert project.exists()
        assert not project.is_accessible()
        workspace.open_project(project)
        assert project.is_accessible()


class TestMembers:
    def test_find_member(self, workspace: Workspace):
        project = workspace.create_project("p")
        (project.location / "src").mkdir()
        (project.location / "src" / "a.txt").write_text("a")
        assert isinstance(project.find_member("src"), Folder)
        assert isinstance(project.find_member("src/a.txt"), File)
        assert project.find_member("missing") is None
        assert project.find_member("") == project

    def test_find_member_rejects_escape(self, workspace: Workspace):
        project = workspace.create_project("p")
        with pytest.raises(ValueError):
            project.find_member("../other")

    def test_members_sorted(self, workspace: Workspace):
        project = workspace.create_project("p")
        (project.location / "b").mkdir()
        (project.location / "a.txt").write_text("a")
        assert [m.name for m in project.members()] == ["a.txt", "b"]

    def test_root_members_are_projects(self, workspace: Workspace):
        workspace.create_project("b")
        workspace.create_project("a")
        assert [m.name for m in workspace.root.members()] == ["a", "b"]
        assert workspace.root.find_member("a") == workspace.project("a")
        assert workspace.root.find_member("zzz") is None

    def test_as_container(self, workspace: Workspace):
        project = workspace.create_project("p")
        assert project.get_folder("x").as_container() == project.get_folder("x")
        assert project.get_file("x").as_container() is None


class TestLinks:
    def test_linked_folder(self, workspace: Workspace, tmp_path: Path):
        project = workspace.create_project("p")
        target = tmp_path / "external"
        (target / "inner").mkdir(parents=True)
        linked = project.link_folder("ext", target)
        assert linked.is_linked()
        assert linked.location == target.resolve()
        assert project.get_folder("ext/inner").location == target.resolve() / "inner"
        assert not project.get_folder("ext/inner").is_linked()
        assert "ext" in [m.name for m in project.members()]
        assert project.find_member("ext") == linked

    def test_link_requires_project(self, workspace: Workspace, tmp_path: Path):
        with pytest.raises(ValueError):
            workspace.project("nope").link_folder("ext", tmp_path)


class TestTeamPrivate:
    def test_marker(self, workspace: Workspace):
        project = workspace.create_project("p")
        folder = project.get_folder(".git")
        assert not folder.team_private
        folder.team_private = True
        assert project.get_folder(".git").team_private
        folder.team_private = False
        assert not folder.team_private


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class TestEvents:
    def test_pre_close_and_pre_delete(self, workspace: Workspace):
        seen: list[ResourceChangeEvent] = []
        workspace.add_listener(seen.append)
        project = workspace.create_project("p")
        workspace.close_project(project)
        workspace.delete_project(project)
        assert [e.type for e in seen] == [EventType.PRE_CLOSE, EventType.PRE_DELETE]
        assert seen[0].resource == project
        assert not project.exists()

    def test_mask_filters(self, workspace: Workspace):
        seen: list[ResourceChangeEvent] = []
        workspace.add_listener(seen.append, EventType.POST_CHANGE)
        project = workspace.create_project("p")
        workspace.close_project(project)
        workspace.notify_added(project.get_folder("a"))
        assert [e.type for e in seen] == [EventType.POST_CHANGE]

    def test_remove_listener(self, workspace: Workspace):
        seen: list[ResourceChangeEvent] = []
        workspace.add_listener(seen.append)
        workspace.remove_listener(seen.append)
        workspace.notify_added(workspace.create_project("p"))
        assert seen == []

    def test_failing_listener_does_not_stop_others(self, workspace: Workspace):
        seen: list[ResourceChangeEvent] = []

        def broken(event: ResourceChangeEvent) -> None:
            raise RuntimeError("boom")

        workspace.add_listener(broken)
        workspace.add_listener(seen.append)
        workspace.notify_changed(workspace.create_project("p"))
        assert len(seen) == 1

    def test_delta_tree(self, workspace: Workspace):
        project = workspace.create_project("p")
        event = workspace.notify_added(
            project.get_folder("a/.git"), project.get_folder("b"),
        )
        root = event.delta
        assert root.resource.type is ResourceType.ROOT
        (project_delta,) = root.children
        assert project_delta.resource == project
        assert project_delta.kind is DeltaKind.CHANGED
        names = [c.resource.name for c in project_delta.children]
        assert names == ["a", "b"]
        a_delta = project_delta.children[0]
        assert a_delta.kind is DeltaKind.CHANGED
        assert a_delta.children[0].kind is DeltaKind.ADDED
        assert project_delta.children[1].kind is DeltaKind.ADDED

    def test_delta_visitor_prunes(self, workspace: Workspace):
        project = workspace.create_project("p")
        event = workspace.notify_removed(project.get_folder("a/b/c"))
        visited: list[str] = []

        def visit(delta: ResourceDelta) -> bool:
            visited.append(delta.resource.full_path)
            return delta.resource.name != "a"

        event.delta.accept(visit)
        assert visited == ["/", "/p", "/p/a"]

    def test_non_callable_listener_rejected(self, workspace: Workspace):
        with pytest.raises(TypeError):
            workspace.add_listener(None)  # type: ignore[arg-type]
