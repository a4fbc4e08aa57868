"""Hook runtime: payload parsing, the executor state machine and one executor
per lifecycle hook.

Hosts spawn a fresh process per event (``memhooks hook <name> --host <host>``).
Each process reads one JSON payload from stdin, talks to the worker at most a
couple of times, writes its response and exits 0.  Nothing in this package may
let an exception reach the host.
"""
