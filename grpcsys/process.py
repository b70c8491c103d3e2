"""Subprocess execution with streamed, filtered output.

Diagnostics go to stderr; stdout is reserved for directives.
"""

import subprocess
import sys
from typing import List, Sequence


def run(cmd: Sequence[str], cwd=None, env=None, capture_output: bool = False,
        verbose: bool = False) -> subprocess.CompletedProcess:
    """Execute a command and return its result without raising on failure.

    Args:
        cmd: Command to execute
        cwd: Working directory
        env: Environment variables
        capture_output: If True, capture stdout and stderr separately and
            print nothing; otherwise stream merged output line by line
        verbose: Print every streamed line instead of filtering

    Returns:
        subprocess.CompletedProcess; when streaming, stdout holds the full
        merged output so callers can report it verbatim
    """
    cmd = [str(c) for c in cmd]
    print("$", " ".join(cmd), file=sys.stderr)

    if capture_output:
        return subprocess.run(cmd, cwd=cwd, env=env, capture_output=True, text=True)

    process = subprocess.Popen(
        cmd,
        cwd=cwd,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        bufsize=1,  # Line buffered
    )
    lines: List[str] = []
    try:
        if process.stdout:
            for line in iter(process.stdout.readline, ''):
                line = line.rstrip()
                lines.append(line)
                if line and (verbose or should_print_line(line)):
                    print(line, file=sys.stderr)
        process.wait()
    finally:
        if process.stdout:
            process.stdout.close()

    return subprocess.CompletedProcess(cmd, process.returncode, "\n".join(lines), None)


def should_print_line(line: str) -> bool:
    """Determine if a tool output line should be printed.

    Errors and progress lines are kept, warning spam is dropped.
    """
    line_lower = line.lower()

    # Always print errors
    if any(keyword in line_lower for keyword in ['error', 'fatal', 'failed', 'cannot']):
        return True

    # Progress indicators
    if any(keyword in line_lower for keyword in ['building', 'compiling', 'linking', 'built target', '-- configuring done']):
        return True

    warning_spam_patterns = [
        'warning c4996',  # MSVC deprecation warnings
        'warning c4244',  # Conversion warnings
        'warning c4267',  # Size conversion warnings
        'note: see declaration of',
        'note: see reference to',
        'in instantiation of',
    ]

    for pattern in warning_spam_patterns:
        if pattern in line_lower:
            return False

    # Remaining warnings from the vendored tree are not ours to fix
    if 'warning' in line_lower:
        return False

    # CMake status chatter
    if line.startswith("-- "):
        return False

    return True
