"""Тесты конвейера рендера: разбор -> формулы -> очистка"""

from __future__ import annotations

import asyncio
import threading

import pytest

from mdpages.core.exceptions import ServiceUnavailable
from mdpages.domains.rendering.entities import Failure, Success
from mdpages.domains.rendering.services import (
    RenderPipeline, ServiceGate, ServiceRegistry, build_math_pattern, substitute_math
)

from tests.fakes import (
    FailingSanitizer, FakeParser, FakeTypesetter, make_pipeline, run
)


# ── целиком, с настоящими библиотеками ─────────────────────────────


class TestRealPipeline:
    def test_heading_and_inline_math(self, real_pipeline: RenderPipeline) -> None:
        outcome = run(real_pipeline.render("# Hi\n$x^2$"))
        assert isinstance(outcome, Success)
        assert "<h1>Hi</h1>" in outcome.html
        assert "<math" in outcome.html
        assert "<msup>" in outcome.html
        assert "<mi>x</mi>" in outcome.html
        assert "<mn>2</mn>" in outcome.html
        assert "$" not in outcome.html

    @pytest.mark.parametrize("text", [
        "<script>alert(1)</script>",
        "$x$\n\n<script>alert(1)</script>",
        "<script>alert(1)</script>\n\n$x$",
        "inline $<script>alert(1)</script>$ math",
        "<p onclick=\"alert(1)\">hi</p>",
    ])
    def test_no_executable_script(self, real_pipeline: RenderPipeline, text: str) -> None:
        outcome = run(real_pipeline.render(text))
        assert isinstance(outcome, Success)
        assert "<script" not in outcome.html.lower()
        assert "onclick" not in outcome.html.lower()

    def test_javascript_links_are_neutralised(self, real_pipeline: RenderPipeline) -> None:
        outcome = run(real_pipeline.render("[x](javascript:alert(1))"))
        assert 'href="javascript:' not in outcome.html

    def test_render_is_deterministic(self, real_pipeline: RenderPipeline) -> None:
        text = "# Title\n\n- one\n- two $a_1$\n\n```python\nprint(1)\n```\n"
        first = run(real_pipeline.render(text))
        second = run(real_pipeline.render(text))
        assert first == second

    def test_empty_document(self, real_pipeline: RenderPipeline) -> None:
        assert run(real_pipeline.render("")) == Success(html="")

    def test_code_fence_keeps_language_class(self, real_pipeline: RenderPipeline) -> None:
        outcome = run(real_pipeline.render("```python\nx = 1\n```"))
        assert 'class="language-python"' in outcome.html

    def test_dollars_inside_code_are_typeset_too(self, real_pipeline: RenderPipeline) -> None:
        # Формулы ищутся по готовому HTML, блоки кода не исключаются
        outcome = run(real_pipeline.render("```sh\necho $HOME $PATH\n```"))
        assert isinstance(outcome, Success)
        assert "<math" in outcome.html
        assert "$HOME" not in outcome.html
        assert "PATH" in outcome.html

    def test_outcome_serialises_by_variant(self) -> None:
        assert Success(html="<p>x</p>").to_dict() == {"status": "success", "html": "<p>x</p>"}
        assert Failure(detail="boom").to_dict() == {"status": "failure", "detail": "boom"}


# ── порядок стадий и обработка ошибок ───────────────────────────────


class TestFailurePolicy:
    def test_parser_error_fails_whole_render(self) -> None:
        pipeline = make_pipeline(parser=FakeParser(error=RuntimeError("boom")))
        outcome = run(pipeline.render("anything"))
        assert outcome == Failure("markdown render error: boom")

    def test_parser_returning_non_text_fails(self) -> None:
        pipeline = make_pipeline(parser=FakeParser(result=42))
        outcome = run(pipeline.render("anything"))
        assert isinstance(outcome, Failure)
        assert outcome.detail.startswith("markdown render error: ")
        assert "not a string" in outcome.detail

    def test_sanitizer_error_fails_whole_render(self) -> None:
        pipeline = make_pipeline(sanitizer=FailingSanitizer())
        outcome = run(pipeline.render("x"))
        assert outcome == Failure("sanitize error: sanitizer exploded")

    def test_bad_math_falls_back_to_literal(self) -> None:
        typesetter = FakeTypesetter(bad={"bad"})
        pipeline = make_pipeline(typesetter=typesetter)
        outcome = run(pipeline.render("$good$ and $bad$"))
        assert isinstance(outcome, Success)
        assert "<mi>good</mi>" in outcome.html
        assert "$bad$" in outcome.html
        assert typesetter.calls == [("good", False), ("bad", False)]

    def test_sanitize_runs_after_math(self) -> None:
        typesetter = FakeTypesetter(output="<script>alert(1)</script><math><mi>x</mi></math>")
        pipeline = make_pipeline(typesetter=typesetter)
        outcome = run(pipeline.render("$x$"))
        assert "<script" not in outcome.html
        assert "<mi>x</mi>" in outcome.html

    def test_render_now_before_ready_is_a_defect(self) -> None:
        pipeline = RenderPipeline(ServiceRegistry())
        with pytest.raises(ServiceUnavailable):
            pipeline.render_now("x")


# ── поиск формул ─────────────────────────────────────────────────────


class TestMathSubstitution:
    pattern = build_math_pattern(1000)

    def test_left_to_right_without_overlap(self) -> None:
        typesetter = FakeTypesetter()
        out = substitute_math("$a$b$c$", typesetter, self.pattern)
        assert [expr for expr, _ in typesetter.calls] == ["a", "c"]
        assert out.count("<math") == 2
        assert "b" in out

    def test_display_math(self) -> None:
        typesetter = FakeTypesetter()
        out = substitute_math("<p>$$E = mc^2$$</p>", typesetter, self.pattern)
        assert typesetter.calls == [("E = mc^2", True)]
        assert 'display="block"' in out

    def test_unbalanced_dollar_is_left_alone(self) -> None:
        typesetter = FakeTypesetter()
        assert substitute_math("<p>costs $5</p>", typesetter, self.pattern) == "<p>costs $5</p>"
        assert typesetter.calls == []

    def test_span_does_not_cross_lines(self) -> None:
        typesetter = FakeTypesetter()
        text = "<p>$a</p>\n<p>b$</p>"
        assert substitute_math(text, typesetter, self.pattern) == text

    def test_span_length_is_bounded(self) -> None:
        typesetter = FakeTypesetter()
        text = "$" + "x" * 20 + "$"
        assert substitute_math(text, typesetter, build_math_pattern(10)) == text
        assert typesetter.calls == []

    def test_parser_entities_are_unescaped(self) -> None:
        typesetter = FakeTypesetter()
        substitute_math("<p>$a &lt; b &amp; c$</p>", typesetter, self.pattern)
        assert typesetter.calls == [("a < b & c", False)]


# ── готовность сервисов ─────────────────────────────────────────────


class TestServiceGates:
    def test_loads_once_for_concurrent_waiters(self) -> None:
        calls = []

        def loader():
            calls.append(1)
            return object()

        gate = ServiceGate("parser", loader)

        async def scenario():
            return await asyncio.gather(gate.wait(), gate.wait(), gate.wait())

        first, second, third = run(scenario())
        assert first is second is third
        assert len(calls) == 1
        assert gate.ready

    def test_render_waits_for_all_services(self) -> None:
        release = threading.Event()

        def slow_parser():
            release.wait(timeout=5)
            return FakeParser()

        registry = ServiceRegistry(
            parser_loader=slow_parser,
            typesetter_loader=FakeTypesetter,
            highlighter_loader=object,
        )
        pipeline = RenderPipeline(registry)

        async def scenario():
            task = asyncio.ensure_future(pipeline.render("hello"))
            await asyncio.sleep(0.05)
            pending = not task.done()
            release.set()
            return pending, await task

        pending, outcome = run(scenario())
        assert pending
        assert outcome == Success(html="<p>hello</p>")
        assert registry.ready

    def test_failed_load_is_reported_and_retried(self) -> None:
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise ImportError("no module")
            return "service"

        gate = ServiceGate("typesetter", flaky)
        with pytest.raises(ServiceUnavailable, match="typesetter failed to load"):
            run(gate.wait())
        assert not gate.ready
        assert run(gate.wait()) == "service"
        assert len(attempts) == 2

    def test_status_reports_each_gate(self) -> None:
        registry = ServiceRegistry()
        assert registry.status() == {"parser": False, "typesetter": False, "highlighter": False}
