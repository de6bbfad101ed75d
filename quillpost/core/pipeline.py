"""
Task Pipeline
=============

Runs a list of tasks in order, feeding each task's result to the next:

    pipeline([validate, check_permissions, do_query], options)

The first task is called with the initial arguments; every later task gets
exactly one argument, the previous result. A task may return a plain value
or a ``concurrent.futures.Future``, which is resolved before the next task
runs. The first exception stops the chain and propagates unchanged.
"""

from concurrent.futures import Future


def _resolve(value):
    if isinstance(value, Future):
        return value.result()
    return value


def pipeline(tasks, *args):
    args = tuple(_resolve(arg) for arg in args)

    if not tasks:
        return args[0] if len(args) == 1 else args

    result = _resolve(tasks[0](*args))
    for task in tasks[1:]:
        result = _resolve(task(result))

    return result
