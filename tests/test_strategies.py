"""Tests for the per-language test strategies."""

from unittest.mock import MagicMock

import pytest

from codeprobe.engine.strategies import (
    ROLE_FOCUS,
    AdvisoryStrategy,
    ExecutableStrategy,
    GenericHeuristicStrategy,
    SimulatedStrategy,
)
from codeprobe.exceptions import SandboxError
from codeprobe.schemas import (
    AdvisoryResponse,
    AdvisoryResult,
    Language,
    Priority,
    ProbeResult,
    Role,
    TestStatus,
)


def _fake_sandbox(result=None, side_effect=None):
    sandbox = MagicMock()
    sandbox.run_probe = MagicMock(return_value=result, side_effect=side_effect)
    return sandbox


def _evaluator(response=None, configured=True, side_effect=None):
    evaluator = MagicMock()
    evaluator.is_configured.return_value = configured
    evaluator.evaluate_code_with_ai = MagicMock(return_value=response, side_effect=side_effect)
    return evaluator


# ── Executable ──


class TestExecutableStrategy:
    def test_maps_probe_results(self):
        sandbox = _fake_sandbox(ProbeResult(status=TestStatus.PASSED, message='ok', execution_time_ms=3))
        outcomes = ExecutableStrategy(Language.PYTHON, sandbox).run('def add(a, b):\n    return a + b\n')

        assert [o.name for o in outcomes] == [
            'Syntax Validation',
            'Function add Exists',
            'add - Valid Input Test',
            'add - Error Handling Test',
        ]
        assert all(o.status == TestStatus.PASSED for o in outcomes)
        assert outcomes[0].execution_time_ms == 3
        assert sandbox.run_probe.call_count == 4

    def test_syntax_probe_does_not_load_source(self):
        sandbox = _fake_sandbox(ProbeResult(status=TestStatus.PASSED, message='ok'))
        ExecutableStrategy(Language.PYTHON, sandbox).run('x = 1\n')
        _, kwargs = sandbox.run_probe.call_args
        assert kwargs == {'load_source': False}

    def test_sandbox_error_becomes_error_outcome(self):
        sandbox = _fake_sandbox(side_effect=SandboxError('interpreter missing'))
        outcomes = ExecutableStrategy(Language.PYTHON, sandbox).run('def f(x):\n    return x\n')
        assert {o.status for o in outcomes} == {TestStatus.ERROR}
        assert outcomes[0].message == 'interpreter missing'

    def test_name_includes_language(self):
        assert ExecutableStrategy(Language.JAVASCRIPT, _fake_sandbox()).name == 'executable:javascript'


# ── Simulated ──


class TestSimulatedStrategy:
    def test_cpp_minimal_program(self):
        outcomes = SimulatedStrategy(Language.CPP).run('#include<iostream>\nint main(){return 0;}')
        assert [o.status for o in outcomes] == [TestStatus.PASSED] * 3
        assert [o.type for o in outcomes] == ['syntax', 'structure', 'imports']

    def test_cpp_imports_never_fail(self):
        outcomes = SimulatedStrategy(Language.CPP).run('int main() { return 0; }')
        imports = next(o for o in outcomes if o.type == 'imports')
        assert imports.status == TestStatus.WARNING
        syntax = next(o for o in outcomes if o.type == 'syntax')
        assert syntax.status == TestStatus.FAILED

    def test_csharp(self):
        code = (
            'using System;\n'
            'namespace Demo {\n'
            '    public class Greeter {\n'
            '        public string Greet(string name) {\n'
            '            return "Hello " + name;\n'
            '        }\n'
            '    }\n'
            '}\n'
        )
        outcomes = SimulatedStrategy(Language.CSHARP).run(code)
        assert {o.status for o in outcomes} == {TestStatus.PASSED}

    def test_informational_checks_pass_with_fail_message(self):
        outcomes = SimulatedStrategy(Language.PYTHON).run('x = 1\n')
        main = next(o for o in outcomes if o.name == 'Main Entry Point Check')
        assert main.status == TestStatus.PASSED
        assert main.message == 'No main guard (acceptable for modules)'

    def test_java_comment_with_apostrophe(self):
        code = (
            'public class Calculator {\n'
            "    // don't divide by zero\n"
            '    public int add(int a, int b) {\n'
            '        return a + b;\n'
            '    }\n'
            '}\n'
        )
        outcomes = SimulatedStrategy(Language.JAVA).run(code)
        braces = next(o for o in outcomes if o.name == 'Brace Balance Check')
        assert braces.status == TestStatus.PASSED

    def test_python_multiline_docstring(self):
        code = 'def f(x):\n    """\n    Return x\n    if it is valid\n    """\n    return x\n'
        outcomes = SimulatedStrategy(Language.PYTHON).run(code)
        syntax = next(o for o in outcomes if o.name == 'Python Syntax Check')
        assert syntax.status == TestStatus.PASSED


# ── Generic ──


class TestGenericHeuristicStrategy:
    def test_clean_balanced_code(self):
        outcomes = GenericHeuristicStrategy().run('(define (square x) (* x x))', language_label='scheme')
        by_name = {o.name: o for o in outcomes}
        assert by_name['Code Presence Check'].status == TestStatus.PASSED
        assert by_name['Syntax Balance Check'].status == TestStatus.PASSED
        assert by_name['Bug Indicator Scan'].status == TestStatus.PASSED
        assert by_name['Unsupported Language'].status == TestStatus.WARNING
        assert "'scheme'" in by_name['Unsupported Language'].message

    def test_one_unmatched_brace_fails_only_syntax(self):
        outcomes = GenericHeuristicStrategy().run('fn main() {\n  let x = 1;\n')
        failed = [o.name for o in outcomes if o.status == TestStatus.FAILED]
        assert failed == ['Syntax Balance Check']

    def test_bug_keyword_fails_scan(self):
        outcomes = GenericHeuristicStrategy().run('x := 1 // FIXME')
        scan = next(o for o in outcomes if o.name == 'Bug Indicator Scan')
        assert scan.status == TestStatus.FAILED
        assert scan.details == {'keywords': ['fixme']}

    def test_unsupported_language_is_last(self):
        outcomes = GenericHeuristicStrategy().run('x')
        assert len(outcomes) == 4
        assert outcomes[-1].name == 'Unsupported Language'


# ── Advisory ──


class TestAdvisoryStrategy:
    def test_no_evaluator_falls_back(self):
        outcomes = AdvisoryStrategy(evaluator=None).run('+++.', language_label='brainfuck')
        assert [o.name for o in outcomes] == [
            'AI Evaluation Not Configured',
            'Code Presence Check',
            'Syntax Balance Check',
            'Bug Indicator Scan',
            'Unsupported Language',
        ]
        assert outcomes[0].status == TestStatus.WARNING

    def test_unconfigured_evaluator_is_not_called(self):
        evaluator = _evaluator(configured=False)
        outcomes = AdvisoryStrategy(evaluator=evaluator).run('+++.')
        assert outcomes[0].name == 'AI Evaluation Not Configured'
        evaluator.evaluate_code_with_ai.assert_not_called()

    def test_error_response_falls_back(self):
        evaluator = _evaluator(AdvisoryResponse(status='error', message='rate limited'))
        outcomes = AdvisoryStrategy(evaluator=evaluator).run('+++.', language_label='brainfuck')
        assert outcomes[0].name == 'AI Evaluation Failed'
        assert 'rate limited' in outcomes[0].message
        assert outcomes[-1].name == 'Unsupported Language'

    def test_evaluator_exception_falls_back(self):
        evaluator = _evaluator(side_effect=RuntimeError('connection reset'))
        outcomes = AdvisoryStrategy(evaluator=evaluator).run('+++.')
        assert outcomes[0].name == 'AI Evaluation Failed'

    def test_success_maps_two_checks_and_info(self):
        result = AdvisoryResult(
            bugs=['Off-by-one in loop'],
            is_correct=False,
            quality_score=7,
            improvements=['Use a lookup table'],
            test_case={'description': 'test empty input'},
        )
        evaluator = _evaluator(AdvisoryResponse(status='success', ai_result=result))
        outcomes = AdvisoryStrategy(evaluator=evaluator, quality_threshold=7).run('code', language_label='cobol')

        assert [(o.name, o.status) for o in outcomes] == [
            ('AI Bug Check', TestStatus.FAILED),
            ('AI Quality Check', TestStatus.PASSED),
            ('AI Suggestions', TestStatus.INFO),
            ('AI Suggested Test Case', TestStatus.INFO),
        ]
        evaluator.evaluate_code_with_ai.assert_called_once_with('code', 'test', 'cobol')

    def test_quality_below_threshold_fails(self):
        result = AdvisoryResult(bugs=[], is_correct=True, quality_score=6)
        evaluator = _evaluator(AdvisoryResponse(status='success', ai_result=result))
        outcomes = AdvisoryStrategy(evaluator=evaluator, quality_threshold=7).run('code')
        assert [o.status for o in outcomes] == [TestStatus.PASSED, TestStatus.FAILED]


# ── Role emphasis ──


class TestRolePriority:
    @pytest.mark.parametrize('role', list(Role))
    def test_role_never_changes_outcomes(self, role):
        code = '#include<iostream>\nint main(){return 0;}'
        baseline = SimulatedStrategy(Language.CPP).run(code, Role.DEFAULT)
        outcomes = SimulatedStrategy(Language.CPP).run(code, role)
        assert [(o.name, o.status) for o in outcomes] == [(o.name, o.status) for o in baseline]

    def test_focus_types_get_high_priority(self):
        outcomes = SimulatedStrategy(Language.CPP).run('#include<iostream>\nint main(){return 0;}', Role.PRODUCT_MANAGER)
        priorities = {o.type: o.priority for o in outcomes}
        assert priorities == {
            'syntax': Priority.NORMAL,
            'structure': Priority.HIGH,
            'imports': Priority.HIGH,
        }

    def test_default_role_has_no_focus(self):
        assert ROLE_FOCUS[Role.DEFAULT] == frozenset()
        outcomes = GenericHeuristicStrategy().run('x', Role.DEFAULT)
        assert {o.priority for o in outcomes} == {Priority.NORMAL}
