"""
Shared fixtures for the STIR test suite.

Configurations are kept small so a full prove/verify run takes well under a
second, except the scenario configuration, which is marked slow where used.
"""

import pytest

from stir import FF, Polynomial, SecurityAssumption, StirConfig, StirParameters, Transcript
from stir.protocol.prover import prove


def make_config(
    log_starting_degree: int = 8,
    log_starting_inv_rate: int = 2,
    log_folding_factor: int = 2,
    num_rounds: int = 2,
    security_assumption: SecurityAssumption = SecurityAssumption.CAPACITY_BOUND,
    security_level: int = 32,
    pow_bits: int = 0,
) -> StirConfig:
    """Build a StirConfig with a fixed folding factor."""
    params = StirParameters.fixed_domain_shift(
        log_starting_degree=log_starting_degree,
        log_starting_inv_rate=log_starting_inv_rate,
        log_folding_factor=log_folding_factor,
        num_rounds=num_rounds,
        security_assumption=security_assumption,
        security_level=security_level,
        pow_bits=pow_bits,
    )
    return StirConfig.from_parameters(params)


@pytest.fixture(scope="session")
def small_config() -> StirConfig:
    """Degree < 2^8, inverse rate 4, folding factor 4, one full round plus the final fold."""
    return make_config()


@pytest.fixture(scope="session")
def scenario_config() -> StirConfig:
    """Degree < 2^10, inverse rate 4, folding factor 4, 3 folds, 100 bits, capacity bound."""
    return make_config(log_starting_degree=10, num_rounds=3, security_level=100)


@pytest.fixture(scope="session")
def small_proof(small_config):
    """An honest (commitment, proof) pair for a maximal-degree polynomial."""
    polynomial = Polynomial.random(FF, small_config.starting_degree - 1, seed=1)
    return prove(small_config, polynomial, Transcript())
