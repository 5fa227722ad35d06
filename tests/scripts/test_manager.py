"""Tests for script discovery and staging."""

import os
import stat

from vss.scripts.graph import build_execution_order
from vss.scripts.manager import ScriptManager, _cache_dir, count_scripts, list_script_files


class TestDiscovery:
    """Tests for ScriptManager.discover."""

    def test_embedded_scripts(self, tmp_path):
        """Should discover the bundled scripts in filename order."""
        manager = ScriptManager(cache_dir=tmp_path)

        scripts = manager.discover()

        filenames = [s.filename for s in scripts]
        assert filenames == sorted(filenames)
        assert "deploy_project.sh" in filenames
        assert all(s.embedded for s in scripts)
        assert all(s.pathname == s.filename for s in scripts)

    def test_embedded_scripts_plan_cleanly(self, tmp_path):
        """Bundled scripts should only reference each other."""
        scripts = ScriptManager(cache_dir=tmp_path).discover()

        ordered = [s.filename for s in build_execution_order(scripts)]

        assert ordered.index("build_next.sh") < ordered.index("link_local_next.sh")
        assert ordered.index("deploy_project.sh") < ordered.index("add_to_hosts.sh")

    def test_external_directory(self, tmp_path):
        """Should read *.sh files directly inside each directory."""
        scripts_dir = tmp_path / "scripts"
        (scripts_dir / "nested").mkdir(parents=True)
        (scripts_dir / "b.sh").write_text("# @vercel.name Bee\n")
        (scripts_dir / "a.sh").write_text("echo a\n")
        (scripts_dir / "notes.txt").write_text("not a script\n")
        (scripts_dir / "nested" / "c.sh").write_text("echo c\n")
        manager = ScriptManager(cache_dir=tmp_path / "cache")

        external = [s for s in manager.discover([scripts_dir]) if not s.embedded]

        assert [s.filename for s in external] == ["a.sh", "b.sh"]
        assert external[1].name == "Bee"
        assert external[0].pathname == str((scripts_dir / "a.sh").resolve())

    def test_missing_directory_skipped(self, tmp_path):
        manager = ScriptManager(cache_dir=tmp_path / "cache")

        external = [s for s in manager.discover([tmp_path / "missing"]) if not s.embedded]

        assert external == []

    def test_same_directory_listed_twice(self, tmp_path, monkeypatch):
        """Should read a directory once even when it is named two ways."""
        monkeypatch.setenv("HOME", str(tmp_path))
        scripts_dir = tmp_path / "s"
        scripts_dir.mkdir()
        (scripts_dir / "a.sh").write_text("echo a\n")
        manager = ScriptManager(cache_dir=tmp_path / "cache")

        scripts = manager.discover(["~/s", str(scripts_dir)])
        ordered = [s.pathname for s in build_execution_order(scripts) if not s.embedded]

        assert ordered == [str((scripts_dir / "a.sh").resolve())]

    def test_count_scripts(self, tmp_path):
        (tmp_path / "one.sh").write_text("")
        (tmp_path / "two.sh").write_text("")
        (tmp_path / "three.py").write_text("")

        assert count_scripts(tmp_path) == 2
        assert count_scripts(tmp_path / "missing") == 0
        assert [p.name for p in list_script_files(tmp_path)] == ["one.sh", "two.sh"]


class TestStaging:
    """Tests for runtime and script staging."""

    def test_prepare_runtime(self, tmp_path):
        """Should write an executable runtime into the cache."""
        manager = ScriptManager(cache_dir=tmp_path)

        runtime = manager.prepare_runtime()

        assert runtime == tmp_path / "runtime.sh"
        assert "VSS_PRE_ENV_FILE" in runtime.read_text()
        assert runtime.stat().st_mode & stat.S_IXUSR

    def test_prepare_embedded_script(self, tmp_path):
        """Should copy embedded content into the script cache."""
        manager = ScriptManager(cache_dir=tmp_path)
        script = next(s for s in manager.discover() if s.filename == "build_next.sh")

        staged = manager.prepare_script(script)

        assert staged == tmp_path / "script" / "build_next.sh"
        assert "@vercel.name" in staged.read_text()
        assert staged.stat().st_mode & stat.S_IXUSR

    def test_prepare_embedded_script_unchanged(self, tmp_path):
        """Should leave an up-to-date copy alone."""
        manager = ScriptManager(cache_dir=tmp_path)
        script = next(s for s in manager.discover() if s.filename == "build_next.sh")
        staged = manager.prepare_script(script)
        os.utime(staged, (0, 0))

        manager.prepare_script(script)

        assert staged.stat().st_mtime == 0

    def test_prepare_embedded_script_refreshes_stale_copy(self, tmp_path):
        manager = ScriptManager(cache_dir=tmp_path)
        script = next(s for s in manager.discover() if s.filename == "build_next.sh")
        staged = manager.prepare_script(script)
        staged.write_text("stale")

        manager.prepare_script(script)

        assert staged.read_text() != "stale"

    def test_external_script_runs_in_place(self, tmp_path):
        (tmp_path / "x.sh").write_text("echo x\n")
        manager = ScriptManager(cache_dir=tmp_path / "cache")
        script = [s for s in manager.discover([tmp_path]) if not s.embedded][0]

        assert manager.prepare_script(script) == (tmp_path / "x.sh").resolve()


class TestCacheDir:
    def test_xdg_cache_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))

        assert _cache_dir() == tmp_path / "vss"

    def test_default(self, monkeypatch, tmp_path):
        monkeypatch.delenv("XDG_CACHE_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))

        assert _cache_dir() == tmp_path / ".cache" / "vss"
