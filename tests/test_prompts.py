"""Tests for interactive prompts."""

from pathlib import Path

import pytest
import typer

from vss import prompts
from vss.errors import UserInterrupted
from vss.prompts import (
    collect_args,
    collect_opts,
    parse_selection,
    prompt_opt,
    prompt_string_opt,
    prompt_worktree_opt,
    select_scripts,
    validate_selection,
)
from vss.scripts.graph import ScriptIndex
from vss.scripts.types import (
    BooleanOpt,
    ScriptArg,
    ScriptDescriptor,
    ScriptKey,
    ScriptRequirement,
    StringOpt,
    WorktreeOpt,
)
from vss.worktree import Worktree


def script(filename, requires=(), args=(), opts=()):
    return ScriptDescriptor(
        name=filename,
        key=ScriptKey.embedded(filename),
        absolute_pathname=Path("/pkg/embedded") / filename,
        requires=tuple(requires),
        args=tuple(args),
        opts=tuple(opts),
    )


def answers(monkeypatch, values, name="prompt"):
    """Replace a typer prompt function with one returning canned answers."""
    remaining = list(values)
    calls = []

    def fake(text, *args, **kwargs):
        calls.append((text, kwargs))
        return remaining.pop(0)

    monkeypatch.setattr(typer, name, fake)
    return calls


class TestParseSelection:
    def test_commas_and_spaces(self):
        assert parse_selection("3, 1 2", 3) == [0, 1, 2]

    def test_duplicates(self):
        assert parse_selection("2,2", 3) == [1]

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            parse_selection("4", 3)

    def test_not_a_number(self):
        with pytest.raises(ValueError):
            parse_selection("a", 3)


class TestValidateSelection:
    """Tests for selection validation."""

    def test_empty(self):
        assert validate_selection([], ScriptIndex([])) == "You must select at least one script"

    def test_required_dependency_missing(self):
        a = script("a.sh")
        b = script("b.sh", requires=[ScriptRequirement("./a.sh", ("X",))])
        index = ScriptIndex([a, b])

        error = validate_selection([b], index)

        assert "b.sh" in error
        assert "a.sh" in error

    def test_valid(self):
        a = script("a.sh")
        b = script("b.sh", requires=[ScriptRequirement("./a.sh", ("X",))])
        index = ScriptIndex([a, b])

        assert validate_selection([a, b], index) is None


class TestSelectScripts:
    """Tests for the numbered checklist."""

    def test_preserves_order(self, monkeypatch):
        scripts = [script("a.sh"), script("b.sh"), script("c.sh")]
        answers(monkeypatch, ["3,1"])

        chosen = select_scripts(scripts, [], ScriptIndex(scripts))

        assert [s.filename for s in chosen] == ["a.sh", "c.sh"]

    def test_previous_selection_is_default(self, monkeypatch):
        scripts = [script("a.sh"), script("b.sh")]
        calls = answers(monkeypatch, ["2"])

        select_scripts(scripts, ["b.sh"], ScriptIndex(scripts))

        assert calls[0][1]["default"] == "2"

    def test_reprompts_on_invalid(self, monkeypatch, capsys):
        a = script("a.sh")
        b = script("b.sh", requires=[ScriptRequirement("a.sh", ("X",))])
        scripts = [a, b]
        calls = answers(monkeypatch, ["9", "2", "1,2"])

        chosen = select_scripts(scripts, [], ScriptIndex(scripts))

        assert chosen == [a, b]
        assert len(calls) == 3
        out = capsys.readouterr().out
        assert "Invalid selection" in out
        assert "requires" in out

    def test_abort_is_user_interrupt(self, monkeypatch):
        def abort(*args, **kwargs):
            raise typer.Abort()

        monkeypatch.setattr(typer, "prompt", abort)
        scripts = [script("a.sh")]

        with pytest.raises(UserInterrupted):
            select_scripts(scripts, [], ScriptIndex(scripts))


class TestCollectInputs:
    """Tests for arg and opt collection."""

    def test_args_prompted_once(self, monkeypatch):
        arg = ScriptArg("DIR", "A directory")
        scripts = [script("a.sh", args=[arg]), script("b.sh", args=[arg])]
        calls = answers(monkeypatch, ["/work"])

        values = collect_args(scripts, {})

        assert values == {"DIR": "/work"}
        assert len(calls) == 1
        assert calls[0][1]["default"] == str(Path.home())

    def test_known_args_skipped(self, monkeypatch):
        calls = answers(monkeypatch, [])
        scripts = [script("a.sh", args=[ScriptArg("DIR", "d")])]

        assert collect_args(scripts, {"DIR": "/x"}) == {"DIR": "/x"}
        assert calls == []

    def test_boolean_opt(self, monkeypatch):
        calls = answers(monkeypatch, [True], name="confirm")
        opt = BooleanOpt(name="PROD", description="Prod", default=False)

        values = collect_opts([script("a.sh", opts=[opt])], {}, {})

        assert values == {"PROD": True}
        assert calls[0][1]["default"] is False

    def test_empty_optional_string_not_stored(self, monkeypatch):
        answers(monkeypatch, [""])
        opt = StringOpt(name="HOST", description="Host", optional=True)

        assert collect_opts([script("a.sh", opts=[opt])], {}, {}) == {}

    def test_known_opts_skipped(self, monkeypatch):
        calls = answers(monkeypatch, [])
        opt = StringOpt(name="HOST", description="Host")

        assert collect_opts([script("a.sh", opts=[opt])], {"HOST": "h"}, {}) == {"HOST": "h"}
        assert calls == []


class TestStringOpt:
    """Tests for string option prompting."""

    def test_pattern_reprompts(self, monkeypatch, capsys):
        calls = answers(monkeypatch, ["abc", "10.0.0.1"])
        opt = StringOpt(
            name="IP", description="IP", pattern=r"\d+\.\d+\.\d+\.\d+", pattern_help="Need an IP"
        )

        assert prompt_string_opt(opt, {}) == "10.0.0.1"
        assert len(calls) == 2
        assert "Need an IP" in capsys.readouterr().out

    def test_default_help(self, monkeypatch, capsys):
        answers(monkeypatch, ["x", "1"])
        opt = StringOpt(name="N", description="N", pattern=r"^\d+$")

        prompt_string_opt(opt, {})

        assert "Invalid input format" in capsys.readouterr().out

    def test_required_empty_reprompts(self, monkeypatch):
        calls = answers(monkeypatch, ["", "value"])
        opt = StringOpt(name="N", description="N")

        assert prompt_string_opt(opt, {}) == "value"
        assert len(calls) == 2


class TestWorktreeOpt:
    """Tests for worktree option prompting."""

    def test_base_dir_unset_uses_default(self, capsys):
        opt = WorktreeOpt(name="TREE", description="Tree", base_dir_arg="DIR", default="/d")

        assert prompt_worktree_opt(opt, {}) == "/d"
        assert "DIR is not set" in capsys.readouterr().out

    def test_no_worktrees_optional(self, monkeypatch):
        monkeypatch.setattr(prompts, "list_worktrees", lambda base: [])
        opt = WorktreeOpt(name="TREE", description="Tree", base_dir_arg="DIR", optional=True)

        assert prompt_worktree_opt(opt, {"DIR": "/repo"}) is None

    def test_choose_worktree(self, monkeypatch):
        trees = [Worktree("/repo/main", "main"), Worktree("/repo/feat", "feat")]
        monkeypatch.setattr(prompts, "list_worktrees", lambda base: trees)
        answers(monkeypatch, [2])
        opt = WorktreeOpt(name="TREE", description="Tree", base_dir_arg="DIR")

        assert prompt_worktree_opt(opt, {"DIR": "/repo"}) == "/repo/feat"

    def test_choose_none_when_optional(self, monkeypatch):
        trees = [Worktree("/repo/main", "main")]
        monkeypatch.setattr(prompts, "list_worktrees", lambda base: trees)
        answers(monkeypatch, [0])
        opt = WorktreeOpt(name="TREE", description="Tree", base_dir_arg="DIR", optional=True)

        assert prompt_worktree_opt(opt, {"DIR": "/repo"}) is None


class TestPromptOpt:
    def test_unknown_variant(self):
        with pytest.raises(TypeError):
            prompt_opt(object(), {})
