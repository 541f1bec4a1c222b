"""
Isolated execution sandbox.

Every probe runs in a fresh child process.  Submitted Python is checked
statically, then loaded into a namespace with restricted builtins and
public views of the allowed modules; the probe body runs in a separate
namespace of its own.  The child writes one JSON result framed by markers
generated for that run, so submitted code cannot predict them.  The parent
enforces a wall-clock timeout and kills the child when it expires.
"""

import ast
import json
import os
import secrets
import shutil
import subprocess
import tempfile
import time
from typing import List, Optional, Tuple

from codeprobe.engine.restrictions import find_violations
from codeprobe.exceptions import SandboxError
from codeprobe.schemas import ProbeResult, TestStatus
from codeprobe.utils.logger import setup_logger

logger = setup_logger(__name__)

# Modules submitted Python code may import; none of them touch the
# filesystem, network or processes.
ALLOWED_PYTHON_MODULES = frozenset({
    'math', 'cmath', 'decimal', 'fractions', 'random', 'statistics',
    'itertools', 'functools', 'operator',
    'collections', 'heapq', 'bisect', 'array',
    'datetime', 'calendar', 'time',
    'json', 're', 'string', 'textwrap',
    'copy', 'typing', 'dataclasses', 'enum', 'abc',
})

# Public names left out of the module views: they evaluate strings or
# look attributes up by name outside the static checks
HIDDEN_MODULE_ATTRIBUTES = {
    'typing': ('get_type_hints', 'get_args', 'ForwardRef', 'evaluate_forward_ref'),
    'functools': ('singledispatch', 'singledispatchmethod'),
    'operator': ('attrgetter', 'methodcaller'),
    'string': ('Formatter',),
}

SAFE_PYTHON_BUILTINS = (
    'abs', 'all', 'any', 'ascii', 'bin', 'bool', 'bytearray', 'bytes',
    'callable', 'chr', 'classmethod', 'complex', 'dict', 'divmod',
    'enumerate', 'filter', 'float', 'format', 'frozenset',
    'hasattr', 'hash', 'hex', 'id', 'int', 'isinstance', 'issubclass', 'iter',
    'len', 'list', 'map', 'max', 'min', 'next', 'object', 'oct', 'ord', 'pow',
    'property', 'range', 'repr', 'reversed', 'round', 'set',
    'slice', 'sorted', 'staticmethod', 'str', 'sum', 'super', 'tuple', 'type',
    'zip', '__build_class__',
    'None', 'True', 'False', 'NotImplemented', 'Ellipsis',
    'BaseException', 'Exception', 'ArithmeticError', 'AssertionError',
    'AttributeError', 'IndexError', 'KeyError', 'LookupError',
    'MemoryError', 'NameError', 'NotImplementedError', 'OverflowError',
    'RecursionError', 'RuntimeError', 'StopIteration', 'SyntaxError',
    'TypeError', 'ValueError', 'ZeroDivisionError', 'ImportError',
)

# Runs as `python -I -S -c`; reads {source, probe, load_source, ...} on stdin.
_PYTHON_HARNESS = r'''
import builtins
import datetime
import json
import math
import sys
import types

try:
    import resource
except ImportError:
    resource = None

payload = json.loads(sys.stdin.read())
out = sys.stdout
dumps = json.dumps
start_marker = payload["start"]
end_marker = payload["end"]
allowed = frozenset(payload["allowed_modules"])
hidden = payload["hidden_attributes"]

for name in sorted(allowed):
    try:
        __import__(name)
    except ImportError:
        pass

if resource is not None:
    memory = payload["memory_mb"] * 1024 * 1024
    cpu = payload["cpu_seconds"]
    for limit, value in (
        ("RLIMIT_AS", (memory, memory)),
        ("RLIMIT_CPU", (cpu, cpu + 1)),
        ("RLIMIT_FSIZE", (0, 0)),
        ("RLIMIT_NPROC", (0, 0)),
    ):
        if hasattr(resource, limit):
            try:
                resource.setrlimit(getattr(resource, limit), value)
            except (ValueError, OSError):
                pass


def is_allowed(module_name):
    return module_name.partition(".")[0] in allowed


# Public attributes only; nested modules become their own views or vanish
views = {
    name: types.SimpleNamespace()
    for name, module in list(sys.modules.items())
    if module is not None and is_allowed(name)
}
for name, view in views.items():
    blocked = frozenset(hidden.get(name, ()))
    for key, value in list(vars(sys.modules[name]).items()):
        if key.startswith("_") or key in blocked:
            continue
        if isinstance(value, types.ModuleType):
            value = views.get(value.__name__)
            if value is None:
                continue
        setattr(view, key, value)

# Compiled apart from this module so their globals hold nothing but the views
GUARDS = """
def guarded_import(name, globals=None, locals=None, fromlist=(), level=0):
    if level or name not in views:
        raise ImportError("Import of '%s' is not allowed in the sandbox" % name)
    if fromlist:
        return views[name]
    return views[name.partition(".")[0]]


def silent_print(*args, **kwargs):
    return None
"""
guards = {"__builtins__": {"ImportError": ImportError}, "views": views}
exec(compile(GUARDS, "<guards>", "exec"), guards)

safe_builtins = {n: getattr(builtins, n) for n in payload["builtins"] if hasattr(builtins, n)}
safe_builtins["__import__"] = guards["guarded_import"]
safe_builtins["print"] = guards["silent_print"]

namespace = {
    "__builtins__": safe_builtins,
    "__name__": "__submission__",
    "math": views["math"],
    "json": views["json"],
    "datetime": views["datetime"],
}


def emit(status, message, error=None):
    out.write("%s\n%s\n%s\n" % (
        start_marker,
        dumps({"status": status, "message": message, "error": error}),
        end_marker,
    ))
    out.flush()


def describe(exc):
    try:
        text = str(exc)
    except Exception:
        text = "<unprintable>"
    return "%s: %s" % (type(exc).__name__, text)


try:
    if payload["load_source"]:
        exec(compile(payload["source"], "<submission>", "exec"), namespace)
except BaseException as exc:
    emit("error", "Code execution failed: " + describe(exc), type(exc).__name__)
    sys.exit(0)

probe_namespace = {
    "__builtins__": builtins,
    "__name__": "__probe__",
    "SOURCE": payload["source"],
    "math": math,
    "submission": namespace,
}
body = "\n".join("    " + line for line in payload["probe"].splitlines())
try:
    exec(compile("def __probe__():\n" + body + "\n", "<probe>", "exec"), probe_namespace)
    result = probe_namespace["__probe__"]()
except BaseException as exc:
    emit("error", describe(exc), type(exc).__name__)
    sys.exit(0)

if not isinstance(result, dict):
    emit("error", "Probe returned %s instead of a result mapping" % type(result).__name__)
else:
    emit("passed" if result.get("success") else "failed", str(result.get("message", "")))
'''

# Runs as `node -e`; same stdin payload and output framing.  The context
# gets only primitives from this realm; its console and timers are built
# inside it.
_NODE_HARNESS = r'''
const vm = require('vm');

const SETUP = [
  'globalThis.console = { log() {}, error() {}, warn() {}, info() {}, debug() {} };',
  'globalThis.setTimeout = function () {};',
  'globalThis.setInterval = function () {};',
].join('\n');

let input = '';
process.stdin.setEncoding('utf8');
process.stdin.on('data', (chunk) => { input += chunk; });
process.stdin.on('end', () => {
  const payload = JSON.parse(input);
  const emit = (status, message, error) => {
    process.stdout.write(payload.start + '\n' +
      JSON.stringify({ status, message, error: error || null }) + '\n' +
      payload.end + '\n');
  };
  const context = vm.createContext({});
  vm.runInContext(SETUP, context);
  context.SOURCE = payload.source;
  const options = { timeout: payload.timeout_ms };
  const describe = (e) => {
    try {
      return (e && e.message) ? String(e.message) : String(e);
    } catch (err) {
      return '<unprintable>';
    }
  };
  const errorName = (e) => {
    try {
      return e && typeof e.name === 'string' ? e.name : null;
    } catch (err) {
      return null;
    }
  };

  try {
    if (payload.load_source) {
      vm.runInContext(payload.source, context, Object.assign({ filename: 'submission.js' }, options));
    }
  } catch (e) {
    emit('error', 'Code execution failed: ' + describe(e), errorName(e));
    return;
  }

  let result;
  try {
    result = vm.runInContext('(function () {\n' + payload.probe + '\n})()', context, options);
  } catch (e) {
    emit('error', describe(e), errorName(e));
    return;
  }
  if (!result || typeof result !== 'object') {
    emit('error', 'Probe returned ' + typeof result + ' instead of a result object');
  } else {
    emit(result.success ? 'passed' : 'failed', String(result.message || ''));
  }
});
'''

# Seconds the child gets past the vm timeout before it is killed
_KILL_GRACE_SECONDS = 2.0


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _scrubbed_env() -> dict:
    env = {'PATH': os.environ.get('PATH', os.defpath), 'PYTHONIOENCODING': 'utf-8'}
    if 'SYSTEMROOT' in os.environ:
        env['SYSTEMROOT'] = os.environ['SYSTEMROOT']
    return env


def new_markers() -> Tuple[str, str]:
    """A start/end marker pair for one probe run."""
    token = secrets.token_hex(16)
    return f'__CODEPROBE_{token}_START__', f'__CODEPROBE_{token}_END__'


def parse_framed_result(stdout: str, start_marker: str, end_marker: str) -> Optional[dict]:
    """Extract the JSON object between the result markers, or None."""
    start = stdout.find(start_marker)
    if start == -1:
        return None
    end = stdout.find(end_marker, start)
    if end == -1:
        return None
    try:
        return json.loads(stdout[start + len(start_marker):end].strip())
    except ValueError:
        return None


class ProbeSandbox:
    """Base class; subclasses provide the child command and payload."""

    language_name = 'generic'

    def __init__(self, timeout_ms: int = 5000, max_memory_mb: int = 256):
        self.timeout_ms = timeout_ms
        self.max_memory_mb = max_memory_mb

    @property
    def wall_timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def is_available(self) -> bool:
        raise NotImplementedError

    def command(self) -> List[str]:
        raise NotImplementedError

    def payload(self, source: str, probe_body: str, load_source: bool) -> dict:
        return {
            'source': source,
            'probe': probe_body,
            'load_source': load_source,
            'timeout_ms': self.timeout_ms,
        }

    def refuse(self, source: str, probe_body: str, load_source: bool) -> Optional[ProbeResult]:
        """An ERROR result when the source must not be run at all."""
        return None

    def run_probe(self, source: str, probe_body: str, load_source: bool = True) -> ProbeResult:
        """
        Run one probe in a new child process.

        Timeouts and crashes come back as ERROR results.  SandboxError is
        raised only when the child cannot be started at all.
        """
        refusal = self.refuse(source, probe_body, load_source)
        if refusal is not None:
            return refusal

        start = time.perf_counter()
        start_marker, end_marker = new_markers()
        data = self.payload(source, probe_body, load_source)
        data.update({'start': start_marker, 'end': end_marker})
        stdin = json.dumps(data)

        with tempfile.TemporaryDirectory(prefix='codeprobe-') as workdir:
            try:
                proc = subprocess.run(
                    self.command(),
                    input=stdin,
                    capture_output=True,
                    text=True,
                    encoding='utf-8',
                    errors='replace',
                    timeout=self.wall_timeout_seconds,
                    cwd=workdir,
                    env=_scrubbed_env(),
                )
            except subprocess.TimeoutExpired:
                logger.warning(f"{self.language_name} probe timed out after {self.timeout_ms}ms")
                return ProbeResult(
                    status=TestStatus.ERROR,
                    message=f"Probe timed out after {self.timeout_ms}ms",
                    execution_time_ms=_elapsed_ms(start),
                    error='timeout',
                )
            except OSError as e:
                raise SandboxError(f"Could not start {self.language_name} sandbox: {e}") from e

        elapsed = _elapsed_ms(start)
        framed = parse_framed_result(proc.stdout, start_marker, end_marker)
        if framed is None:
            stderr = (proc.stderr or '').strip()
            logger.debug(f"{self.language_name} probe produced no result (exit {proc.returncode}): {stderr[-500:]}")
            return ProbeResult(
                status=TestStatus.ERROR,
                message=f"Probe process exited with code {proc.returncode} without a result",
                execution_time_ms=elapsed,
                error=stderr[-500:] or None,
            )

        status = framed.get('status')
        if status not in (TestStatus.PASSED.value, TestStatus.FAILED.value, TestStatus.ERROR.value):
            status = TestStatus.ERROR.value
        return ProbeResult(
            status=TestStatus(status),
            message=str(framed.get('message') or ''),
            execution_time_ms=elapsed,
            error=framed.get('error'),
        )


class PythonSandbox(ProbeSandbox):
    """Runs probes in an isolated Python interpreter with restricted builtins."""

    language_name = 'python'

    def __init__(self, python_executable: str, timeout_ms: int = 5000, max_memory_mb: int = 256):
        super().__init__(timeout_ms=timeout_ms, max_memory_mb=max_memory_mb)
        self.python_executable = python_executable

    def is_available(self) -> bool:
        return bool(self.python_executable) and (
            os.path.isfile(self.python_executable) or shutil.which(self.python_executable) is not None
        )

    def command(self) -> List[str]:
        return [self.python_executable, '-I', '-S', '-c', _PYTHON_HARNESS]

    def refuse(self, source: str, probe_body: str, load_source: bool) -> Optional[ProbeResult]:
        """Code that does not parse or fails the static checks is never run."""
        sources = [('<probe>', probe_body, '')]
        if load_source:
            sources.insert(0, ('<submission>', source, 'Code execution failed: '))

        for filename, code, prefix in sources:
            try:
                tree = ast.parse(code, filename=filename)
            except (SyntaxError, ValueError) as e:
                return ProbeResult(
                    status=TestStatus.ERROR,
                    message=f"{prefix}{type(e).__name__}: {e}",
                    error=type(e).__name__,
                )

            violations = find_violations(tree)
            if violations:
                logger.warning(f"Refused {filename}: {'; '.join(str(v) for v in violations)}")
                return ProbeResult(
                    status=TestStatus.ERROR,
                    message=f"{prefix}SandboxViolation: {violations[0]}",
                    error='SandboxViolation',
                )
        return None

    def payload(self, source: str, probe_body: str, load_source: bool) -> dict:
        data = super().payload(source, probe_body, load_source)
        data.update({
            'memory_mb': self.max_memory_mb,
            # One second past the wall timeout so the parent's kill reports the timeout
            'cpu_seconds': -(-self.timeout_ms // 1000) + 1,
            'allowed_modules': sorted(ALLOWED_PYTHON_MODULES),
            'hidden_attributes': {name: list(attrs) for name, attrs in HIDDEN_MODULE_ATTRIBUTES.items()},
            'builtins': list(SAFE_PYTHON_BUILTINS),
        })
        return data


class NodeSandbox(ProbeSandbox):
    """Runs probes inside a Node.js vm context."""

    language_name = 'javascript'

    def __init__(self, node_binary: str = 'node', timeout_ms: int = 5000, max_memory_mb: int = 256):
        super().__init__(timeout_ms=timeout_ms, max_memory_mb=max_memory_mb)
        self.node_binary = node_binary

    @property
    def wall_timeout_seconds(self) -> float:
        # vm timeouts only interrupt synchronous code; the process kill is the hard stop
        return self.timeout_ms / 1000.0 + _KILL_GRACE_SECONDS

    def is_available(self) -> bool:
        return shutil.which(self.node_binary) is not None

    def command(self) -> List[str]:
        return [
            shutil.which(self.node_binary) or self.node_binary,
            f'--max-old-space-size={self.max_memory_mb}',
            '-e',
            _NODE_HARNESS,
        ]
