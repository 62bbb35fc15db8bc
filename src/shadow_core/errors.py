"""Engine exception hierarchy."""


class ShadowTradeError(Exception):
    """Base class for every error the engine raises."""


class ValidationError(ShadowTradeError):
    """Order parameters rejected at creation. No state was written."""


class AuthorizationError(ShadowTradeError):
    """Caller is not allowed to perform the operation. No state was changed."""


class NotFoundError(ShadowTradeError):
    """Unknown order id."""


class EvaluationIndeterminate(ShadowTradeError):
    """The runtime could not resolve a reveal.

    Not raised to callers of ``DecisionEvaluator.evaluate``; the evaluator
    answers with the caller's default instead. Runtimes and internal helpers
    may raise it to signal the condition.
    """
