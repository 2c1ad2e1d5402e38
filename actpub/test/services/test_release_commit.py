from __future__ import annotations

from pathlib import Path

from actpub.core.result import Err, Ok
from actpub.output.console import MockConsole
from actpub.services.release.commit import (
    ApiCommitStrategy,
    CheckoutCommitStrategy,
    build_release_commit,
    select_commit_strategy,
)
from actpub.services.release.model import LocalArtifact, LocalArtifactSet, ReleaseIdentity
from actpub.services.release.reconcile import TreeLayout
from actpub.services.release.semver import ManifestVersion
from actpub.test.services._fakes import FakeRepository, make_pair

LAYOUT = TreeLayout()

BASE_FILES = {
    "package.json": b'{"version": "1.2.3"}',
    "src/index.ts": b"export {}",
    "dist/old.js": b"old",
    ".github/workflows/release.yml": b"on: push",
}


def _identity(repo: FakeRepository) -> ReleaseIdentity:
    version = ManifestVersion(major=1, minor=2, patch=3, raw="1.2.3")
    return ReleaseIdentity.create(version, base_commit_id=repo.head)


def _artifacts(root: Path, files: dict[str, bytes]) -> LocalArtifactSet:
    return LocalArtifactSet(
        root=root / "dist",
        artifacts=tuple(LocalArtifact(path=p, content=c) for p, c in files.items()),
    )


def test_select_strategy(tmp_path: Path) -> None:
    remote, repo = make_pair(tmp_path, {})
    small = select_commit_strategy(
        "small", remote=remote, repository=repo, layout=LAYOUT, include_dependencies=False
    )
    large = select_commit_strategy(
        "large", remote=remote, repository=repo, layout=LAYOUT, include_dependencies=True
    )
    assert isinstance(small, ApiCommitStrategy)
    assert isinstance(large, CheckoutCommitStrategy)


class TestApiStrategy:
    """Release commit built through the hosting API."""

    def test_commit_replaces_artifacts_and_drops_metadata(self, tmp_path: Path) -> None:
        remote, repo = make_pair(tmp_path, BASE_FILES)
        identity = _identity(repo)
        console = MockConsole()

        result = build_release_commit(
            strategy=ApiCommitStrategy(remote, repo),
            identity=identity,
            artifacts=_artifacts(tmp_path, {"new.js": b"new"}),
            layout=LAYOUT,
            include_artifacts=True,
            console=console,
        )

        assert isinstance(result, Ok)
        assert result.value.degraded is None
        assert remote.store.files_of(result.value.sha) == {
            "package.json": b'{"version": "1.2.3"}',
            "src/index.ts": b"export {}",
            "dist/new.js": b"new",
        }
        _, parents, message = remote.store.commits[result.value.sha]
        assert parents == [identity.base_commit_id]
        assert message == "chore: prepare v1.2.3 release"
        # The release branch was pushed so the API could see it.
        assert repo.pushes[0] == ([f"{repo.head}:refs/heads/releases/v1.2.3"], True, False)
        assert console.find("tree patch: 2 delete(s), 1 upsert(s)")

    def test_unreadable_tree_treated_as_empty(self, tmp_path: Path) -> None:
        remote, repo = make_pair(tmp_path, BASE_FILES)
        remote.fail.add("get_tree")
        console = MockConsole()

        result = build_release_commit(
            strategy=ApiCommitStrategy(remote, repo),
            identity=_identity(repo),
            artifacts=_artifacts(tmp_path, {"new.js": b"new"}),
            layout=LAYOUT,
            include_artifacts=True,
            console=console,
        )

        assert isinstance(result, Ok)
        assert result.value.degraded is not None
        assert result.value.patch.deletes == ()
        # Nothing could be deleted, but the new artifact still lands.
        files = remote.store.files_of(result.value.sha)
        assert files["dist/new.js"] == b"new"
        assert "dist/old.js" in files
        assert console.has_warning()

    def test_truncated_listing_warns(self, tmp_path: Path) -> None:
        remote, repo = make_pair(tmp_path, BASE_FILES)
        remote.truncated = True
        console = MockConsole()

        result = build_release_commit(
            strategy=ApiCommitStrategy(remote, repo),
            identity=_identity(repo),
            artifacts=_artifacts(tmp_path, {}),
            layout=LAYOUT,
            include_artifacts=True,
            console=console,
        )

        assert isinstance(result, Ok)
        assert console.find("truncated")

    def test_branch_push_failure_is_transport_error(self, tmp_path: Path) -> None:
        remote, repo = make_pair(tmp_path, BASE_FILES)
        repo.fail.add("push")

        result = build_release_commit(
            strategy=ApiCommitStrategy(remote, repo),
            identity=_identity(repo),
            artifacts=_artifacts(tmp_path, {}),
            layout=LAYOUT,
            include_artifacts=True,
            console=MockConsole(),
        )

        assert isinstance(result, Err)
        assert result.error.kind == "transport"

    def test_create_commit_failure_is_fatal(self, tmp_path: Path) -> None:
        remote, repo = make_pair(tmp_path, BASE_FILES)
        remote.fail.add("create_commit")

        result = build_release_commit(
            strategy=ApiCommitStrategy(remote, repo),
            identity=_identity(repo),
            artifacts=_artifacts(tmp_path, {}),
            layout=LAYOUT,
            include_artifacts=True,
            console=MockConsole(),
        )

        assert isinstance(result, Err)
        assert result.error.kind == "remote_api"

    def test_branch_retained_or_discarded(self, tmp_path: Path) -> None:
        remote, repo = make_pair(tmp_path, {})
        identity = _identity(repo)
        strategy = ApiCommitStrategy(remote, repo)
        assert isinstance(strategy.prepare_branch(identity), Ok)

        assert strategy.retain_branch(identity, "c9") == Ok(None)
        assert remote.refs["heads/releases/v1.2.3"] == "c9"

        assert strategy.discard_branch(identity) == Ok(None)
        assert "heads/releases/v1.2.3" not in remote.refs

    def test_discard_failure_degrades(self, tmp_path: Path) -> None:
        remote, repo = make_pair(tmp_path, {})
        identity = _identity(repo)

        result = ApiCommitStrategy(remote, repo).discard_branch(identity)

        assert isinstance(result, Err)
        assert result.error.step == "branch cleanup"


class TestCheckoutStrategy:
    """Release commit built in the local working copy."""

    def test_stages_patch_and_dependencies(self, tmp_path: Path) -> None:
        remote, repo = make_pair(tmp_path, BASE_FILES)
        (tmp_path / "dist").mkdir()
        (tmp_path / "dist" / "new.js").write_bytes(b"new")
        (tmp_path / "node_modules" / "left-pad").mkdir(parents=True)
        (tmp_path / "node_modules" / "left-pad" / "index.js").write_bytes(b"pad")
        identity = _identity(repo)

        result = build_release_commit(
            strategy=CheckoutCommitStrategy(repo, layout=LAYOUT, include_dependencies=True),
            identity=identity,
            artifacts=_artifacts(tmp_path, {"new.js": b"new"}),
            layout=LAYOUT,
            include_artifacts=True,
            console=MockConsole(),
        )

        assert isinstance(result, Ok)
        assert repo.removed == [".github/workflows/release.yml", "dist/old.js"]
        assert repo.added == ["dist/new.js", "node_modules"]
        assert remote.store.files_of(result.value.sha) == {
            "package.json": b'{"version": "1.2.3"}',
            "src/index.ts": b"export {}",
            "dist/new.js": b"new",
            "node_modules/left-pad/index.js": b"pad",
        }
        _, parents, _ = remote.store.commits[result.value.sha]
        assert parents == [identity.base_commit_id]
        # Nothing is pushed until tags are published.
        assert repo.pushes == []

    def test_missing_dependency_dir_is_not_staged(self, tmp_path: Path) -> None:
        _, repo = make_pair(tmp_path, {})
        identity = _identity(repo)

        result = build_release_commit(
            strategy=CheckoutCommitStrategy(repo, layout=LAYOUT, include_dependencies=True),
            identity=identity,
            artifacts=_artifacts(tmp_path, {}),
            layout=LAYOUT,
            include_artifacts=True,
            console=MockConsole(),
        )

        assert isinstance(result, Ok)
        assert repo.added == []

    def test_commit_failure_is_transport_error(self, tmp_path: Path) -> None:
        _, repo = make_pair(tmp_path, {})
        repo.fail.add("commit")

        result = build_release_commit(
            strategy=CheckoutCommitStrategy(repo, layout=LAYOUT, include_dependencies=False),
            identity=_identity(repo),
            artifacts=_artifacts(tmp_path, {}),
            layout=LAYOUT,
            include_artifacts=False,
            console=MockConsole(),
        )

        assert isinstance(result, Err)
        assert result.error.kind == "transport"
        assert result.error.message.startswith("git commit failed")

    def test_retain_pushes_branch(self, tmp_path: Path) -> None:
        remote, repo = make_pair(tmp_path, {})
        identity = _identity(repo)
        strategy = CheckoutCommitStrategy(repo, layout=LAYOUT, include_dependencies=False)

        assert strategy.retain_branch(identity, "c7") == Ok(None)
        assert remote.refs["heads/releases/v1.2.3"] == "c7"
        assert strategy.discard_branch(identity) == Ok(None)
