"""hackrank: hackathon team evaluation and evaluator-consensus backend."""

__version__ = "0.1.0"
