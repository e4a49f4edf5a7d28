"""Errors raised by fight analysis. str() of each is safe to show to end users."""


class AnalysisError(Exception):
    """Base class for everything the analysis entry points can raise."""


class SourceError(AnalysisError):
    """Communicating with the FFLogs API failed."""

    def __init__(self, message: str) -> None:
        super().__init__(
            f"Something went wrong when communicating with the FFLogs API: {message}"
        )


class UnknownFightError(AnalysisError):
    def __init__(self, fight_name: str) -> None:
        super().__init__(f"Phase definitions do not yet exist for {fight_name}.")
        self.fight_name = fight_name


class UnlabeledFightError(AnalysisError):
    def __init__(self) -> None:
        super().__init__("FFLogs API did not specify fight name.")


class InvalidEventMatchError(AnalysisError):
    """A marker matched an event that carries no timestamp."""

    def __init__(self) -> None:
        super().__init__("FFLogs API returned an unknown event type.")


class UnspecifiedFightTimeError(AnalysisError):
    def __init__(self) -> None:
        super().__init__("FFLogs API did not specify fight timings.")


class NoMatchingFightsError(AnalysisError):
    def __init__(self) -> None:
        super().__init__(
            "That report did not contain any fights matching the requested fight."
        )


class InvalidReportCodeError(AnalysisError):
    def __init__(self) -> None:
        super().__init__("That wasn't a valid report code or FFLogs url.")
