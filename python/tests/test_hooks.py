"""Tests for post-commit hook isolation."""

from cofish.services.hooks import PostCommitHooks


def test_hooks_run_in_order_and_collect_results():
    calls = []
    hooks = PostCommitHooks()
    hooks.add("first", lambda: calls.append("first") or 1)
    hooks.add("second", lambda: calls.append("second") or 2)

    outcomes = hooks.run()

    assert calls == ["first", "second"]
    assert [(o.name, o.ok, o.result) for o in outcomes] == [("first", True, 1), ("second", True, 2)]


def test_failing_hook_is_isolated():
    def explode():
        raise RuntimeError("karma store down")

    calls = []
    hooks = PostCommitHooks()
    hooks.add("explode", explode)
    hooks.add("after", lambda: calls.append("after"))

    outcomes = hooks.run()

    assert calls == ["after"]
    assert outcomes[0].ok is False
    assert outcomes[0].error == "karma store down"
    assert outcomes[1].ok is True


def test_no_hooks():
    assert PostCommitHooks().run() == []
