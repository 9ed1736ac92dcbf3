"""journal_analytics package.

Convenience exports for the analysis entry points.
"""

__all__: list[str] = [
    "analyze",
    "analyze_entries",
    "AnalysisResult",
    "JournalInputError",
    "ParseError",
    "FormatError",
    "ValidationError",
    "RiskHeuristics",
    "SolPriceFeed",
]


def __getattr__(name: str):
    if name in ("analyze", "analyze_entries", "AnalysisResult"):
        from .pipeline import analyze, analyze_entries, AnalysisResult

        return {
            "analyze": analyze,
            "analyze_entries": analyze_entries,
            "AnalysisResult": AnalysisResult,
        }[name]
    if name in ("JournalInputError", "ParseError", "FormatError", "ValidationError"):
        from . import errors

        return getattr(errors, name)
    if name == "RiskHeuristics":
        from .heuristics import RiskHeuristics

        return RiskHeuristics
    if name == "SolPriceFeed":
        from .prices import SolPriceFeed

        return SolPriceFeed
    raise AttributeError(f"module 'journal_analytics' has no attribute {name!r}")
