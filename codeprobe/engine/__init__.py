from codeprobe.engine.facade import TestExecutionService, build_strategy_table, execute_tests

__all__ = ['TestExecutionService', 'build_strategy_table', 'execute_tests']
