"""
Operator-facing terminal output for the bootstrap run.

Every line starts with one of three prefixes so that operators (and scripts
tailing the output) can grep for the outcome:

    STATUS:  progress of a stage
    ERROR:   a stage failed, the bootstrap stops here
    SUCCESS: terminal success, or an operator action is required
"""


class Console:
    """Prefixed status lines on stdout, zero external dependencies."""

    STATUS  = "STATUS"
    ERROR   = "ERROR"
    SUCCESS = "SUCCESS"

    @classmethod
    def _line(cls, prefix: str, msg: str, *details) -> None:
        parts = [f"{prefix}: {msg}"]
        parts.extend(str(d) for d in details)
        print(" ".join(parts), flush=True)

    @classmethod
    def status(cls, msg: str, *details) -> None:
        cls._line(cls.STATUS, msg, *details)

    @classmethod
    def error(cls, msg: str, *details) -> None:
        cls._line(cls.ERROR, msg, *details)

    @classmethod
    def success(cls, msg: str, *details) -> None:
        cls._line(cls.SUCCESS, msg, *details)
