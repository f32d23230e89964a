from .demo import (  # noqa: F401
    bootstrap_factory,
    describe_animals,
    run_demo,
    seed_sample_data,
)

__all__ = [
    "bootstrap_factory",
    "seed_sample_data",
    "describe_animals",
    "run_demo",
]
