"""Probe body templates for the executable strategies.

A probe body is the inside of a zero-argument function that returns a
mapping with ``success`` and ``message``.  The sandbox wraps it: Python
bodies become ``def __probe__():`` and JavaScript bodies become an IIFE.
``SOURCE`` (the submitted code as a string) is available to every body.
Python bodies run in their own namespace with ``math`` and ``submission``,
the mapping of names the submitted code defined.

Placeholders use string.Template syntax: ``$name`` is the function under
test, ``$args`` its rendered argument list, ``$expected`` the rendered
expected value.  Locals use the ``__cp_`` prefix so they never shadow the
function under test.
"""

import json
from string import Template

from codeprobe.schemas import Language

# ── Python ──

_PY_SYNTAX = '''\
try:
    compile(SOURCE, "<submission>", "exec")
except SyntaxError as e:
    return {"success": False, "message": "Syntax error: %s (line %s)" % (e.msg, e.lineno)}
return {"success": True, "message": "Code syntax is valid"}
'''

_PY_EXISTS = '''\
if "$name" not in submission:
    return {"success": False, "message": "Function not found"}
if callable(submission["$name"]):
    return {"success": True, "message": "Function exists"}
return {"success": False, "message": "Name is defined but not callable"}
'''

_PY_EXPECT = '''\
try:
    __cp_result = submission["$name"]($args)
except Exception as e:
    return {"success": False, "message": "Function failed with valid input: %s: %s" % (type(e).__name__, e)}
if __cp_result == $expected:
    return {"success": True, "message": "Function works correctly with valid inputs"}
return {"success": False, "message": "Function returned unexpected result: %r" % (__cp_result,)}
'''

_PY_SMOKE = '''\
try:
    __cp_result = submission["$name"]($args)
except Exception as e:
    return {"success": False, "message": "Function failed with valid input: %s: %s" % (type(e).__name__, e)}
return {"success": True, "message": "Function executed with valid input: %r" % (__cp_result,)}
'''

_PY_NULL_INPUT = '''\
try:
    __cp_result = submission["$name"]($args)
except Exception:
    return {"success": True, "message": "Function rejects null input with an error"}
if isinstance(__cp_result, float) and (math.isnan(__cp_result) or math.isinf(__cp_result)):
    return {"success": False, "message": "Function returns invalid number for null input"}
return {"success": True, "message": "Function handles edge cases properly"}
'''

_PY_DIVISION_BY_ZERO = '''\
try:
    __cp_result = submission["$name"]($args)
except Exception as e:
    return {"success": True, "message": "Division by zero properly handled with error: %s: %s" % (type(e).__name__, e)}
if isinstance(__cp_result, float) and math.isinf(__cp_result):
    return {"success": False, "message": "BUG: Division by zero returns infinity - should raise or handle gracefully"}
if isinstance(__cp_result, float) and math.isnan(__cp_result):
    return {"success": False, "message": "BUG: Division by zero returns NaN - should raise or handle gracefully"}
return {"success": True, "message": "Division by zero handled properly, returned: %r" % (__cp_result,)}
'''

_PY_NULL_REFERENCE = '''\
try:
    submission["$name"]($args)
except (AttributeError, TypeError) as e:
    if "NoneType" in str(e):
        return {"success": False, "message": "BUG FOUND: Null reference error - %s" % e}
    return {"success": True, "message": "Function handles errors properly: %s" % e}
except Exception as e:
    return {"success": True, "message": "Function handles errors properly: %s: %s" % (type(e).__name__, e)}
return {"success": True, "message": "Function works with valid input"}
'''

# ── JavaScript ──

_JS_SYNTAX = '''\
try {
  new Function(SOURCE);
  return { success: true, message: 'Code syntax is valid' };
} catch (e) {
  return { success: false, message: 'Syntax error: ' + e.message };
}
'''

_JS_EXISTS = '''\
return {
  success: typeof $name === 'function',
  message: typeof $name === 'function' ? 'Function exists' : 'Function not found'
};
'''

_JS_EXPECT = '''\
try {
  const __cp_result = $name($args);
  return {
    success: __cp_result === $expected,
    message: __cp_result === $expected
      ? 'Function works correctly with valid inputs'
      : 'Function returned unexpected result: ' + __cp_result
  };
} catch (e) {
  return { success: false, message: 'Function failed with valid input: ' + e.message };
}
'''

_JS_SMOKE = '''\
try {
  const __cp_result = $name($args);
  return { success: true, message: 'Function executed with valid input: ' + __cp_result };
} catch (e) {
  return { success: false, message: 'Function failed with valid input: ' + e.message };
}
'''

_JS_NULL_INPUT = '''\
try {
  const __cp_result = $name($args);
  if (typeof __cp_result === 'number' && (isNaN(__cp_result) || !isFinite(__cp_result))) {
    return { success: false, message: 'Function returns invalid number for null input' };
  }
  return { success: true, message: 'Function handles edge cases properly' };
} catch (e) {
  return { success: true, message: 'Function rejects null input with an error' };
}
'''

_JS_DIVISION_BY_ZERO = '''\
try {
  const __cp_result = $name($args);
  if (__cp_result === Infinity || __cp_result === -Infinity) {
    return { success: false, message: 'BUG: Division by zero returns Infinity - should throw error or handle gracefully' };
  }
  if (typeof __cp_result === 'number' && isNaN(__cp_result)) {
    return { success: false, message: 'BUG: Division by zero returns NaN - should throw error or handle gracefully' };
  }
  return { success: true, message: 'Division by zero handled properly, returned: ' + __cp_result };
} catch (e) {
  return { success: true, message: 'Division by zero properly handled with error: ' + e.message };
}
'''

_JS_NULL_REFERENCE = '''\
try {
  $name($args);
  return { success: true, message: 'Function works with valid input' };
} catch (e) {
  const msg = e && e.message ? e.message : String(e);
  if (msg.includes('Cannot read properties of null') || msg.includes('Cannot read properties of undefined')) {
    return { success: false, message: 'BUG FOUND: Null/undefined reference error - ' + msg };
  }
  return { success: true, message: 'Function handles errors properly: ' + msg };
}
'''

_TEMPLATES = {
    Language.PYTHON: {
        'syntax': _PY_SYNTAX,
        'exists': _PY_EXISTS,
        'expect': _PY_EXPECT,
        'smoke': _PY_SMOKE,
        'null_input': _PY_NULL_INPUT,
        'division_by_zero': _PY_DIVISION_BY_ZERO,
        'null_reference': _PY_NULL_REFERENCE,
    },
    Language.JAVASCRIPT: {
        'syntax': _JS_SYNTAX,
        'exists': _JS_EXISTS,
        'expect': _JS_EXPECT,
        'smoke': _JS_SMOKE,
        'null_input': _JS_NULL_INPUT,
        'division_by_zero': _JS_DIVISION_BY_ZERO,
        'null_reference': _JS_NULL_REFERENCE,
    },
}


def probe_dialect(language: Language) -> Language:
    """TypeScript probes are plain JavaScript."""
    if language == Language.TYPESCRIPT:
        return Language.JAVASCRIPT
    return language


def render_literal(value, language: Language) -> str:
    if probe_dialect(language) == Language.JAVASCRIPT:
        return json.dumps(value)
    return repr(value)


def render_probe(kind: str, language: Language, name: str = '', args=(), expected=None) -> str:
    """Fill in the template for one probe kind."""
    template = _TEMPLATES[probe_dialect(language)][kind]
    return Template(template).substitute(
        name=name,
        args=', '.join(render_literal(a, language) for a in args),
        expected=render_literal(expected, language),
    )
