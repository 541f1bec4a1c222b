"""Tests for the Test Execution Facade."""

from unittest.mock import patch

import pytest

from codeprobe.config import Settings
from codeprobe.engine.facade import build_strategy_table, check_strategy_table
from codeprobe.engine.strategies import TestStrategy
from codeprobe.exceptions import ConfigurationError
from codeprobe.schemas import Language, Priority, TestStatus

CPP_MINIMAL = '#include<iostream>\nint main(){return 0;}'

PY_DIVIDE_INF = '''\
def divide(a, b):
    if b == 0:
        return float("inf")
    return a / b
'''


class ExplodingStrategy(TestStrategy):
    name = 'exploding'

    def evaluate(self, code, language_label=''):
        raise RuntimeError('strategy blew up')


# ── Strategy table ──


class TestStrategyTable:
    def test_covers_every_language(self, offline_settings):
        table = build_strategy_table(offline_settings)
        assert set(table) == set(Language)
        check_strategy_table(table)

    def test_offline_table_is_simulated(self, offline_settings):
        table = build_strategy_table(offline_settings)
        assert table[Language.PYTHON].name == 'simulated:python'
        assert table[Language.TYPESCRIPT].name == 'simulated:javascript'
        assert table[Language.UNKNOWN].name == 'advisory'

    def test_python_sandbox_when_enabled(self, python_sandbox_settings):
        table = build_strategy_table(python_sandbox_settings)
        assert table[Language.PYTHON].name == 'executable:python'

    def test_disabled_sandbox_logged_as_configuration(self):
        settings = Settings(sandbox_enabled=False, node_binary='node', llm_provider='')
        with patch('codeprobe.engine.facade.logger') as mock_logger:
            build_strategy_table(settings)
        messages = [c.args[0] for c in mock_logger.info.call_args_list + mock_logger.warning.call_args_list]
        assert any('disabled by configuration' in m for m in messages)
        assert not any('not available' in m for m in messages)

    def test_missing_node_logged_as_unavailable(self, python_sandbox_settings):
        with patch('codeprobe.engine.facade.logger') as mock_logger:
            build_strategy_table(python_sandbox_settings)
        messages = [c.args[0] for c in mock_logger.info.call_args_list]
        assert any(f"'{python_sandbox_settings.node_binary}' not available" in m for m in messages)
        assert not any('disabled by configuration' in m for m in messages)

    def test_incomplete_table_rejected(self, make_service, offline_settings):
        table = build_strategy_table(offline_settings)
        del table[Language.CSHARP]
        with pytest.raises(ConfigurationError, match='csharp'):
            make_service(offline_settings, strategies=table)


# ── Scenarios ──


class TestExecuteTests:
    def test_cpp_minimal_program_passes(self, offline_service):
        report = offline_service.execute_tests(CPP_MINIMAL, 'C++', 'developer')
        assert report.total_tests == 3
        assert report.passed == 3
        assert report.language == 'cpp'
        assert report.strategy == 'simulated:cpp'
        assert report.quality is not None

    def test_unknown_language_without_advisory(self, offline_service):
        report = offline_service.execute_tests('++++[>++<-]>.', 'brainfuck', 'developer')
        assert [o.name for o in report.test_cases] == [
            'AI Evaluation Not Configured',
            'Code Presence Check',
            'Syntax Balance Check',
            'Bug Indicator Scan',
            'Unsupported Language',
        ]
        assert report.errors == 0
        unsupported = [o for o in report.test_cases if o.name == 'Unsupported Language']
        assert len(unsupported) == 1
        assert unsupported[0].status == TestStatus.WARNING

    def test_python_divide_returning_infinity(self, make_service, python_sandbox_settings):
        report = make_service(python_sandbox_settings).execute_tests(PY_DIVIDE_INF, 'python')
        by_name = {o.name: o for o in report.test_cases}
        assert by_name['Syntax Validation'].status == TestStatus.PASSED
        assert by_name['Function divide Exists'].status == TestStatus.PASSED
        assert by_name['divide - Valid Input Test'].status == TestStatus.PASSED
        assert by_name['divide - Division by Zero Test'].status == TestStatus.FAILED
        assert report.strategy == 'executable:python'

    @pytest.mark.node
    def test_javascript_divide_returning_infinity(self, make_service):
        settings = Settings(sandbox_enabled=True, node_binary='node', llm_provider='')
        report = make_service(settings).execute_tests('function divide(a,b){return a/b;}', 'JavaScript')
        probe = next(o for o in report.test_cases if o.name == 'divide - Division by Zero Test')
        assert probe.status == TestStatus.FAILED

    def test_strategy_failure_gives_degraded_report(self, make_service, offline_settings):
        table = build_strategy_table(offline_settings)
        table[Language.JAVA] = ExplodingStrategy()
        report = make_service(offline_settings, strategies=table).execute_tests('class A {}', 'java')

        assert report.total_tests == 1
        assert report.errors == 1
        assert report.test_cases[0].name == 'Test Execution'
        assert report.test_cases[0].status == TestStatus.ERROR
        assert report.summary == 'Test execution failed: strategy blew up'

    def test_idempotent_totals(self, offline_service):
        code = 'public class A {\n    public void run() { }\n}\n'
        first = offline_service.execute_tests(code, 'java', 'tester')
        second = offline_service.execute_tests(code, 'java', 'tester')
        assert (first.total_tests, first.passed, first.failed) == (second.total_tests, second.passed, second.failed)

    @pytest.mark.parametrize('code, language', [
        ('x', 'python'),
        ('\n\n\nx\n', 'cobol'),
        (CPP_MINIMAL, 'cpp'),
        ('function f() {', 'javascript'),
        ('a\n' * 500, 'csharp'),
    ])
    def test_coverage_bounds(self, offline_service, code, language):
        report = offline_service.execute_tests(code, language)
        assert 0 <= report.coverage <= 100
        assert report.total_tests == report.passed + report.failed + report.errors

    def test_role_only_sets_priority(self, offline_service):
        dev = offline_service.execute_tests(CPP_MINIMAL, 'cpp', 'developer')
        pm = offline_service.execute_tests(CPP_MINIMAL, 'cpp', 'product manager')
        assert [o.status for o in dev.test_cases] == [o.status for o in pm.test_cases]
        assert pm.role == 'product_manager'
        assert next(o for o in dev.test_cases if o.type == 'syntax').priority == Priority.HIGH
        assert next(o for o in pm.test_cases if o.type == 'syntax').priority == Priority.NORMAL

    def test_unknown_role_is_default(self, offline_service):
        report = offline_service.execute_tests(CPP_MINIMAL, 'cpp', 'astronaut')
        assert report.role == 'default'
        assert {o.priority for o in report.test_cases} == {Priority.NORMAL}

    def test_records_metrics(self, offline_service):
        offline_service.execute_tests(CPP_MINIMAL, 'cpp')
        stats = offline_service.metrics.get_stats('strategy:simulated:cpp')
        assert stats['count'] == 1
        assert stats['failures'] == 0

    def test_report_is_json_ready(self, offline_service):
        data = offline_service.execute_tests(CPP_MINIMAL, 'cpp').to_dict()
        assert data['totalTests'] == 3
        assert data['quality']['grade'] in ('A', 'B', 'C', 'D', 'F')
        assert isinstance(data['timestamp'], str)
