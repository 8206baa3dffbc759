"""Scripts evaluated inside the page to wire the test framework to the channels.

`page.evaluate` is sandboxed: nothing but plain values can be shipped across,
so the installer gets one object of strings and reports back only through
`window.callPhantom` (log channel) and `window.alert` (exit channel).
"""

from __future__ import annotations

from typing import Any

from .config import RunnerConfig


LOG_FUNCTION_NAME = "callPhantom"


INSTALL_SINKS_JS = """
(args) => {
    function resolvePath(path) {
        return path.split('.').reduce(function (obj, key) {
            return (obj === undefined || obj === null) ? undefined : obj[key];
        }, window);
    }
    function isSlimer() {
        return (typeof slimer !== 'undefined') || /Gecko\\/\\d/.test(navigator.userAgent);
    }
    function hasGoogAsync() {
        return (typeof goog !== 'undefined') && goog.async !== undefined && goog.async.nextTick !== undefined;
    }
    function needsTimerShim() {
        if (args.timerShim === 'never') return false;
        if (!hasGoogAsync()) return false;
        return args.timerShim === 'always' || isSlimer();
    }

    // setImmediate_ doesn't cooperate with the host-side event loop on
    // Gecko; route it through a plain zero-delay timeout instead.
    var shimmed = false;
    if (needsTimerShim()) {
        goog.async.nextTick.setImmediate_ = function (funcToCall) {
            return window.setTimeout(funcToCall, 0);
        };
        shimmed = true;
    }

    var runner = resolvePath(args.namespace);
    if (runner === undefined || runner === null) {
        throw new Error('test framework not found on window: ' + args.namespace);
    }
    var token = args.newlineToken;
    runner[args.setPrintFn](function (x) {
        window[args.logFunction](String(x).split('\\n').join(token));
    });
    runner[args.setExitFn](function (isSuccess) {
        window.alert(args.exitPrefix + (isSuccess ? 0 : 1));
    });
    return shimmed;
}
"""


RUN_TESTS_JS = """
(args) => {
    var runner = args.namespace.split('.').reduce(function (obj, key) {
        return (obj === undefined || obj === null) ? undefined : obj[key];
    }, window);
    // Tests run asynchronously; the verdict comes back over the exit channel.
    runner[args.runAllFn]();
}
"""


def installer_args(config: RunnerConfig) -> dict[str, Any]:
    fw = config.framework
    return {
        "namespace": fw.namespace,
        "setPrintFn": fw.set_print_fn,
        "setExitFn": fw.set_exit_fn,
        "runAllFn": fw.run_all_fn,
        "logFunction": LOG_FUNCTION_NAME,
        "newlineToken": config.newline_token,
        "exitPrefix": config.exit_code_prefix,
        "timerShim": config.timer_shim,
    }
