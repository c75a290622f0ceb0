from registrar.composition.plan import Join, JoinPlan, join

__all__ = [
    "Join",
    "JoinPlan",
    "join",
]
