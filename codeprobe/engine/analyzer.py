"""Static Pattern Analyzer.

Inspects raw source text with regex and string heuristics.  Nothing here
executes code: it discovers function-like declarations, synthesizes the
candidate probes for the executable strategies, and holds the structural
check batteries and generic scanners used by the simulated and fallback
strategies.

The name-based probe selection is an explicit heuristic.  A function named
``add`` that divides is not probed for division by zero; only names
containing ``div`` are.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Pattern, Tuple

from codeprobe.engine.probes import probe_dialect, render_probe
from codeprobe.schemas import Language, TestCase, TestStatus

# ── Function discovery ──

# Top-level functions only; methods need an instance to call.
_PY_FUNCTION_RE = re.compile(r'^def\s+([A-Za-z_]\w*)\s*\(([^)]*)\)', re.MULTILINE)
_JS_FUNCTION_RE = re.compile(r'\bfunction\s+([A-Za-z_]\w*)\s*\(([^)]*)\)\s*\{')

_OPENERS = '([{'
_CLOSERS = ')]}'
_PAIRS = {')': '(', ']': '[', '}': '{'}


@dataclass(frozen=True)
class FunctionSignature:
    name: str
    language: Language
    params: Tuple[str, ...] = ()

    @property
    def required_args(self) -> int:
        """Count of positional parameters without defaults."""
        count = 0
        for index, param in enumerate(self.params):
            if param.startswith('*') or param.startswith('...'):
                break
            if param == '/' or '=' in param:
                continue
            if self.language == Language.PYTHON and index == 0 and param in ('self', 'cls'):
                continue
            count += 1
        return count


def _split_params(raw: str) -> Tuple[str, ...]:
    """Split a parameter list on top-level commas."""
    params, depth, current = [], 0, []
    for ch in raw:
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        if ch == ',' and depth == 0:
            params.append(''.join(current).strip())
            current = []
        else:
            current.append(ch)
    params.append(''.join(current).strip())
    return tuple(p for p in params if p)


def discover_functions(code: str, language: Language) -> List[FunctionSignature]:
    """Find named function declarations, first occurrence of each name wins."""
    dialect = probe_dialect(language)
    if dialect == Language.PYTHON:
        pattern = _PY_FUNCTION_RE
    elif dialect == Language.JAVASCRIPT:
        pattern = _JS_FUNCTION_RE
    else:
        return []

    seen = set()
    functions = []
    for match in pattern.finditer(code):
        name = match.group(1)
        if name in seen:
            continue
        seen.add(name)
        functions.append(FunctionSignature(name, language, _split_params(match.group(2))))
    return functions


# ── Probe rule tables ──

@dataclass(frozen=True)
class InputRule:
    """Name pattern -> arguments and the result a correct implementation gives."""
    pattern: Pattern
    args: Tuple[Any, ...]
    expected: Any


VALID_INPUT_RULES: Tuple[InputRule, ...] = (
    InputRule(re.compile(r'^div(ide)?$'), (10, 2), 5),
    InputRule(re.compile(r'^(add|sum)$'), (2, 3), 5),
    InputRule(re.compile(r'^(multiply|mul|product)$'), (2, 3), 6),
    InputRule(re.compile(r'^(subtract|sub|minus)$'), (5, 3), 2),
    InputRule(re.compile(r'(validate|check|is_?valid)'), ('test@example.com',), True),
)


def _valid_input_probe(fn: FunctionSignature) -> TestCase:
    lowered = fn.name.lower()
    for rule in VALID_INPUT_RULES:
        if rule.pattern.search(lowered):
            body = render_probe('expect', fn.language, fn.name, rule.args, rule.expected)
            break
    else:
        body = render_probe('smoke', fn.language, fn.name, ('test',) * fn.required_args)
    return TestCase(name=f'{fn.name} - Valid Input Test', type='functionality', body=body)


def _null_input_probe(fn: FunctionSignature) -> TestCase:
    body = render_probe('null_input', fn.language, fn.name, (None,) * max(fn.required_args, 1))
    return TestCase(name=f'{fn.name} - Error Handling Test', type='error_handling', body=body)


def _division_probe(fn: FunctionSignature) -> TestCase:
    body = render_probe('division_by_zero', fn.language, fn.name, (10, 0))
    return TestCase(name=f'{fn.name} - Division by Zero Test', type='bug_detection', body=body)


def _null_reference_probe(fn: FunctionSignature) -> TestCase:
    body = render_probe('null_reference', fn.language, fn.name, (1,) * max(fn.required_args, 1))
    return TestCase(name=f'{fn.name} - Null Reference Test', type='bug_detection', body=body)


@dataclass(frozen=True)
class ProbeRule:
    """Conditional probe: generated only for functions whose name matches."""
    name: str
    matches: Callable[[str], bool]
    build: Callable[[FunctionSignature], TestCase]


PROBE_RULES: Tuple[ProbeRule, ...] = (
    ProbeRule('division_by_zero', lambda n: 'div' in n, _division_probe),
    ProbeRule(
        'null_reference',
        lambda n: any(k in n for k in ('get', 'find', 'process')),
        _null_reference_probe,
    ),
)


def build_test_cases(code: str, language: Language) -> List[TestCase]:
    """
    Synthesize the candidate probes for an executable language.

    Order: one syntax check, then per function the existence, valid input
    and error handling probes followed by any matching PROBE_RULES.
    """
    cases = [TestCase(
        name='Syntax Validation',
        type='syntax',
        body=render_probe('syntax', language),
        load_source=False,
    )]

    for fn in discover_functions(code, language):
        cases.append(TestCase(
            name=f'Function {fn.name} Exists',
            type='existence',
            body=render_probe('exists', language, fn.name),
        ))
        cases.append(_valid_input_probe(fn))
        cases.append(_null_input_probe(fn))

        lowered = fn.name.lower()
        for rule in PROBE_RULES:
            if rule.matches(lowered):
                cases.append(rule.build(fn))

    return cases


# ── Generic scanners ──

@dataclass(frozen=True)
class DelimiterReport:
    balanced: bool
    problems: Tuple[str, ...] = ()


def check_delimiters(code: str, c_comments: bool = False) -> DelimiterReport:
    """
    Check ()[]{} nesting and quote parity.

    Brackets inside quotes are ignored.  Single and double quoted strings end
    at the line break; backtick strings may span lines.  With c_comments,
    ``//`` line comments and ``/* */`` block comments are skipped too.
    """
    stack: List[Tuple[str, int]] = []
    problems: List[str] = []
    quote = None
    quote_line = 0
    escaped = False
    line = 1
    i = 0

    while i < len(code):
        ch = code[i]
        if ch == '\n':
            line += 1
        if quote:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == quote:
                quote = None
            elif ch == '\n' and quote != '`':
                problems.append(f"Unterminated {quote} quote on line {quote_line}")
                quote = None
            i += 1
            continue

        if c_comments and code.startswith('//', i):
            end = code.find('\n', i)
            i = len(code) if end == -1 else end
            continue
        if c_comments and code.startswith('/*', i):
            end = code.find('*/', i + 2)
            if end == -1:
                problems.append(f"Unterminated comment on line {line}")
                break
            line += code.count('\n', i, end)
            i = end + 2
            continue

        if ch in '\'"`':
            quote, quote_line = ch, line
        elif ch in _OPENERS:
            stack.append((ch, line))
        elif ch in _CLOSERS:
            if stack and stack[-1][0] == _PAIRS[ch]:
                stack.pop()
            else:
                problems.append(f"Unexpected '{ch}' on line {line}")
        i += 1

    if quote:
        problems.append(f"Unterminated {quote} quote on line {quote_line}")
    for opener, opened_at in stack:
        problems.append(f"Unclosed '{opener}' from line {opened_at}")

    return DelimiterReport(balanced=not problems, problems=tuple(problems))


_BUG_KEYWORD_RE = re.compile(r'\b(todo|fixme|bug|hack|xxx)\b|(exception|error)', re.IGNORECASE)


def scan_bug_keywords(code: str) -> List[str]:
    """Distinct bug-indicative tokens, lowercased, in order of first appearance."""
    found: List[str] = []
    for match in _BUG_KEYWORD_RE.finditer(code):
        token = (match.group(1) or match.group(2)).lower()
        if token not in found:
            found.append(token)
    return found


def count_non_blank_lines(code: str) -> int:
    return sum(1 for line in code.split('\n') if line.strip())


# ── Structural check batteries for simulated languages ──

@dataclass(frozen=True)
class StructuralCheck:
    """
    A data-described check.  When the predicate is false the outcome gets
    fail_status; PASSED there means the check is informational only.
    """
    name: str
    type: str
    predicate: Callable[[str], bool]
    pass_message: str
    fail_message: str
    fail_status: TestStatus = TestStatus.FAILED


def _has(pattern: str, flags: int = 0) -> Callable[[str], bool]:
    compiled = re.compile(pattern, flags)
    return lambda code: compiled.search(code) is not None


def _braces_balanced(code: str) -> bool:
    return check_delimiters(code, c_comments=True).balanced


def python_code_lines(code: str) -> List[str]:
    """
    Source lines with comments removed and every string literal reduced to ''.

    A triple-quoted string that spans lines is folded into the line where it
    starts, so docstring text never reads as code.
    """
    lines: List[str] = []
    current: List[str] = []
    quote = None
    i = 0

    while i < len(code):
        ch = code[i]
        if quote:
            if ch == '\\':
                i += 2
                continue
            if code.startswith(quote, i):
                current.append("''")
                i += len(quote)
                quote = None
                continue
            if ch == '\n' and len(quote) == 1:
                current.append("''")
                quote = None
                lines.append(''.join(current))
                current = []
            i += 1
            continue

        if ch == '#':
            end = code.find('\n', i)
            i = len(code) if end == -1 else end
            continue
        if ch in '\'"':
            quote = ch * 3 if code.startswith(ch * 3, i) else ch
            i += len(quote)
            continue
        if ch == '\n':
            lines.append(''.join(current))
            current = []
        else:
            current.append(ch)
        i += 1

    if quote:
        current.append("''")
    lines.append(''.join(current))
    return lines


_PY_HEADER_RE = re.compile(r'^(async\s+def|def|class|if|elif|else|for|while|try|except|finally|with)\b')


def _python_headers_terminated(code: str) -> bool:
    """Compound statement headers at bracket depth zero must contain a colon."""
    depth = 0
    for raw in python_code_lines(code):
        line = raw.strip()
        start_depth = depth
        for ch in line:
            if ch in _OPENERS:
                depth += 1
            elif ch in _CLOSERS:
                depth = max(depth - 1, 0)
        if start_depth or not line or line.endswith('\\'):
            continue
        if _PY_HEADER_RE.match(line) and depth == 0 and ':' not in line:
            return False
    return True


def _python_indentation_consistent(code: str) -> bool:
    uses_tabs = uses_spaces = False
    for line in code.split('\n'):
        indent = line[:len(line) - len(line.lstrip(' \t'))]
        if not indent or not line.strip():
            continue
        if ' ' in indent and '\t' in indent:
            return False
        uses_tabs = uses_tabs or '\t' in indent
        uses_spaces = uses_spaces or ' ' in indent
    return not (uses_tabs and uses_spaces)


_C_FAMILY_METHOD = (
    r'(public|private|protected|internal|static)[\w\s<>\[\],]*\s[A-Za-z_]\w*\s*\([^)]*\)\s*(throws\s+[\w.,\s]+)?\{'
)

STRUCTURAL_CHECKS: Dict[Language, Tuple[StructuralCheck, ...]] = {
    Language.PYTHON: (
        StructuralCheck('Python Syntax Check', 'syntax', _python_headers_terminated,
                        'Syntax is valid', "Syntax errors detected: compound statement missing ':'"),
        StructuralCheck('Import Statement Validation', 'imports',
                        _has(r'^\s*(import\s+\w|from\s+[\w.]+\s+import\b)', re.MULTILINE),
                        'Import statements found and validated', 'No import statements to validate',
                        TestStatus.PASSED),
        StructuralCheck('Function Definition Check', 'functions',
                        _has(r'^\s*(async\s+def|def|class)\s+\w+', re.MULTILINE),
                        'Function or class definitions found', 'No function definitions (script-style code)',
                        TestStatus.PASSED),
        StructuralCheck('Indentation Validation', 'style', _python_indentation_consistent,
                        'Indentation is consistent', 'Mixed tabs and spaces in indentation'),
        StructuralCheck('Main Entry Point Check', 'structure',
                        _has(r'''if\s+__name__\s*==\s*['"]__main__['"]'''),
                        'Main guard found', 'No main guard (acceptable for modules)',
                        TestStatus.PASSED),
    ),
    Language.JAVASCRIPT: (
        StructuralCheck('JavaScript Syntax Check', 'syntax', _braces_balanced,
                        'Brackets and quotes are balanced', 'Unbalanced brackets or quotes'),
        StructuralCheck('Function Definition Check', 'functions',
                        _has(r'\bfunction\b|=>|\b[A-Za-z_$][\w$]*\s*\([^)]*\)\s*\{'),
                        'Function definitions found', 'No function definitions found',
                        TestStatus.PASSED),
        StructuralCheck('Module Import Check', 'imports',
                        _has(r'\brequire\s*\(|^\s*import\b', re.MULTILINE),
                        'Module imports found', 'No module imports (acceptable)',
                        TestStatus.PASSED),
        StructuralCheck('Debugger Statement Check', 'style',
                        lambda code: re.search(r'\bdebugger\s*;?', code) is None,
                        'No leftover debugger statements', 'Leftover debugger statement found',
                        TestStatus.WARNING),
    ),
    Language.JAVA: (
        StructuralCheck('Java Syntax Check', 'syntax',
                        lambda code: 'class ' in code and '{' in code,
                        'Java syntax is valid', 'Missing class definition'),
        StructuralCheck('Package Declaration', 'structure', _has(r'^\s*package\s+[\w.]+\s*;', re.MULTILINE),
                        'Package declaration found', 'No package declaration (acceptable)',
                        TestStatus.PASSED),
        StructuralCheck('Method Validation', 'methods', _has(_C_FAMILY_METHOD),
                        'Method definitions found', 'No method definitions found',
                        TestStatus.WARNING),
        StructuralCheck('Import Statement Check', 'imports', _has(r'^\s*import\s+[\w.*]+\s*;', re.MULTILINE),
                        'Import statements found', 'No import statements (acceptable)',
                        TestStatus.PASSED),
        StructuralCheck('Brace Balance Check', 'style', _braces_balanced,
                        'Braces are balanced', 'Unbalanced braces, brackets or quotes'),
    ),
    Language.CSHARP: (
        StructuralCheck('C# Syntax Check', 'syntax',
                        lambda code: 'class ' in code and '{' in code,
                        'C# syntax is valid', 'Missing class definition'),
        StructuralCheck('Namespace Validation', 'structure', _has(r'\bnamespace\s+[\w.]+'),
                        'Namespace found', 'No namespace (acceptable)',
                        TestStatus.PASSED),
        StructuralCheck('Method Validation', 'methods', _has(_C_FAMILY_METHOD),
                        'Method definitions found', 'No method definitions found',
                        TestStatus.WARNING),
        StructuralCheck('Using Statement Check', 'imports', _has(r'^\s*using\s+[\w.]+\s*;', re.MULTILINE),
                        'Using statements found', 'No using statements (acceptable)',
                        TestStatus.PASSED),
        StructuralCheck('Brace Balance Check', 'style', _braces_balanced,
                        'Braces are balanced', 'Unbalanced braces, brackets or quotes'),
    ),
    Language.CPP: (
        StructuralCheck('C++ Syntax Check', 'syntax',
                        lambda code: re.search(r'#include\s*<[^>]+>', code) is not None and ';' in code,
                        'C++ syntax is valid', 'Missing #include directive or statement terminator'),
        StructuralCheck('Main Function Check', 'structure', _has(r'\bint\s+main\s*\('),
                        'main() entry point found', 'No int main() entry point found'),
        StructuralCheck('Include/Namespace Check', 'imports',
                        _has(r'#include\b|\busing\s+namespace\s+\w+'),
                        'Includes or namespace using statements found',
                        'No includes or namespace using statements found',
                        TestStatus.WARNING),
    ),
}
