"""STIR configuration: user parameters and the protocol constants derived from them."""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from stir.primitives.domain import Domain
from stir.primitives.field import FF, field_bits, two_adicity
from stir.primitives.merkle_tree import MerkleCommitmentScheme
from stir.protocol.proximity_gaps import SecurityAssumption

logger = logging.getLogger(__name__)

# --- Constants ---

MAX_POW_BITS = 32
"""Largest proof-of-work a configuration may demand from the prover."""


class StirConfigError(ValueError):
    """Parameters do not describe a valid or reachable STIR instance."""


# --- Parameters ---

@dataclass(frozen=True)
class StirParameters:
    """User-facing STIR parameters.

    Entry i of log_folding_factors is the fold performed in round i; the last
    entry is the final fold, producing the plaintext final polynomial. Entry i
    of log_inv_rates is the log inverse rate of the polynomial that fold i
    produces, so every fold by 2^k followed by halving the domain gives
    log_inv_rates[i] = log_inv_rates[i-1] + k - 1.
    """
    log_starting_degree: int
    log_starting_inv_rate: int
    log_folding_factors: Tuple[int, ...]
    log_inv_rates: Tuple[int, ...]
    security_assumption: SecurityAssumption
    security_level: int
    pow_bits: int
    mmcs_config: MerkleCommitmentScheme = field(default_factory=MerkleCommitmentScheme)
    field: type = FF

    @classmethod
    def fixed_domain_shift(
        cls,
        log_starting_degree: int,
        log_starting_inv_rate: int,
        log_folding_factor: int,
        num_rounds: int,
        security_assumption: SecurityAssumption,
        security_level: int,
        pow_bits: int,
        mmcs_config: Optional[MerkleCommitmentScheme] = None,
        field=FF,
    ) -> "StirParameters":
        """Parameters with the same folding factor for all num_rounds folds."""
        return cls.from_folding_factors(
            log_starting_degree,
            log_starting_inv_rate,
            [log_folding_factor] * num_rounds,
            security_assumption,
            security_level,
            pow_bits,
            mmcs_config,
            field,
        )

    @classmethod
    def from_folding_factors(
        cls,
        log_starting_degree: int,
        log_starting_inv_rate: int,
        log_folding_factors: Sequence[int],
        security_assumption: SecurityAssumption,
        security_level: int,
        pow_bits: int,
        mmcs_config: Optional[MerkleCommitmentScheme] = None,
        field=FF,
    ) -> "StirParameters":
        """Parameters for arbitrary folding factors, deriving the rates."""
        log_inv_rates = []
        rate = log_starting_inv_rate
        for log_k in log_folding_factors:
            rate = rate + log_k - 1
            log_inv_rates.append(rate)
        return cls(
            log_starting_degree=log_starting_degree,
            log_starting_inv_rate=log_starting_inv_rate,
            log_folding_factors=tuple(log_folding_factors),
            log_inv_rates=tuple(log_inv_rates),
            security_assumption=security_assumption,
            security_level=security_level,
            pow_bits=pow_bits,
            mmcs_config=mmcs_config if mmcs_config is not None else MerkleCommitmentScheme(),
            field=field,
        )

    @property
    def num_rounds(self) -> int:
        """Number of folds, including the final one."""
        return len(self.log_folding_factors)


# --- Derived Configuration ---

@dataclass(frozen=True)
class RoundConfig:
    """Derived constants of full round i (1-based), which commits to g_i."""
    log_folding_factor: int
    log_next_folding_factor: int
    log_degree: int
    log_evaluation_domain_size: int
    num_queries: int
    num_ood_samples: int
    pow_bits: int
    log_inv_rate: int

    @property
    def folding_factor(self) -> int:
        return 1 << self.log_folding_factor

    @property
    def next_folding_factor(self) -> int:
        return 1 << self.log_next_folding_factor

    @property
    def evaluation_domain_size(self) -> int:
        return 1 << self.log_evaluation_domain_size


@dataclass(frozen=True)
class StirConfig:
    """Parameters plus every derived protocol constant. Read-only."""
    parameters: StirParameters
    starting_domain_log_size: int
    starting_folding_pow_bits: int
    round_parameters: Tuple[RoundConfig, ...]
    log_stopping_degree: int
    final_log_inv_rate: int
    final_queries: int
    final_pow_bits: int

    @classmethod
    def from_parameters(cls, parameters: StirParameters) -> "StirConfig":
        """Derive query counts, OOD samples and PoW bits for every round.

        Raises:
            StirConfigError: If the parameters are inconsistent or unreachable
        """
        _validate(parameters)

        assumption = parameters.security_assumption
        level = parameters.security_level
        fbits = field_bits(parameters.field)
        protocol_level = max(0, level - parameters.pow_bits)
        lf = parameters.log_folding_factors
        num_full_rounds = len(lf) - 1

        try:
            starting_folding_pow_bits = _pow_bits(
                level,
                assumption.prox_gaps_error(
                    parameters.log_starting_degree,
                    parameters.log_starting_inv_rate,
                    fbits,
                    1 << lf[0],
                ),
            )

            log_degree = parameters.log_starting_degree
            log_domain = parameters.log_starting_degree + parameters.log_starting_inv_rate
            prev_rate = parameters.log_starting_inv_rate
            rounds = []
            for i in range(1, num_full_rounds + 1):
                log_degree -= lf[i - 1]
                log_domain -= 1
                rate = parameters.log_inv_rates[i - 1]

                num_ood_samples = assumption.determine_ood_samples(level, log_degree, rate, fbits)
                num_queries = assumption.queries(protocol_level, prev_rate)

                query_error = assumption.queries_error(prev_rate, num_queries)
                combination_error = fbits - (
                    math.log2(max(num_queries + num_ood_samples, 1))
                    + assumption.list_size_bits(log_degree, rate)
                    + 1.0
                )
                folding_error = assumption.prox_gaps_error(log_degree, rate, fbits, 1 << lf[i])
                pow_bits = _pow_bits(level, min(query_error, combination_error, folding_error))

                round_config = RoundConfig(
                    log_folding_factor=lf[i - 1],
                    log_next_folding_factor=lf[i],
                    log_degree=log_degree,
                    log_evaluation_domain_size=log_domain,
                    num_queries=num_queries,
                    num_ood_samples=num_ood_samples,
                    pow_bits=pow_bits,
                    log_inv_rate=rate,
                )
                logger.debug("Round %d: %s", i, round_config)
                rounds.append(round_config)
                prev_rate = rate
        except ValueError as e:
            raise StirConfigError(str(e)) from e

        final_queries = assumption.queries(protocol_level, prev_rate)
        final_pow_bits = _pow_bits(level, assumption.queries_error(prev_rate, final_queries))

        config = cls(
            parameters=parameters,
            starting_domain_log_size=parameters.log_starting_degree + parameters.log_starting_inv_rate,
            starting_folding_pow_bits=starting_folding_pow_bits,
            round_parameters=tuple(rounds),
            log_stopping_degree=log_degree - lf[-1],
            final_log_inv_rate=prev_rate,
            final_queries=final_queries,
            final_pow_bits=final_pow_bits,
        )

        for name, bits in config.pow_requirements():
            if bits > MAX_POW_BITS:
                raise StirConfigError(
                    f"{name} needs {bits} proof-of-work bits, above the maximum of {MAX_POW_BITS}; "
                    f"raise pow_bits or lower security_level"
                )
        logger.debug(
            "STIR config: %d folds, stopping degree 2^%d, %d final queries, final pow %d bits",
            len(lf), config.log_stopping_degree, final_queries, final_pow_bits,
        )
        return config

    # --- Accessors ---

    @property
    def field(self):
        return self.parameters.field

    @property
    def mmcs(self) -> MerkleCommitmentScheme:
        return self.parameters.mmcs_config

    @property
    def num_rounds(self) -> int:
        return self.parameters.num_rounds

    @property
    def num_full_rounds(self) -> int:
        return len(self.round_parameters)

    @property
    def log_starting_degree(self) -> int:
        return self.parameters.log_starting_degree

    @property
    def starting_degree(self) -> int:
        """Degree bound d: committed polynomials have degree < d."""
        return 1 << self.parameters.log_starting_degree

    @property
    def stopping_degree(self) -> int:
        return 1 << self.log_stopping_degree

    def folding_factor(self, fold: int) -> int:
        """Folding factor of fold (0-based)."""
        return 1 << self.parameters.log_folding_factors[fold]

    def starting_domain(self) -> Domain:
        return Domain(self.field, self.starting_domain_log_size)

    def pow_requirements(self):
        """Yield (name, bits) for every proof-of-work in the protocol."""
        yield "starting fold", self.starting_folding_pow_bits
        for i, round_config in enumerate(self.round_parameters, start=1):
            yield f"round {i}", round_config.pow_bits
        yield "final round", self.final_pow_bits


def _pow_bits(security_level: int, error_bits: float) -> int:
    return math.ceil(max(0.0, security_level - error_bits))


def _validate(parameters: StirParameters) -> None:
    lf = parameters.log_folding_factors
    if parameters.field.degree != 1:
        raise StirConfigError(f"Only prime fields are supported, got {parameters.field.name}")
    if parameters.security_level <= 0:
        raise StirConfigError(f"security_level must be positive, got {parameters.security_level}")
    if parameters.pow_bits < 0:
        raise StirConfigError(f"pow_bits must be non-negative, got {parameters.pow_bits}")
    if len(lf) == 0:
        raise StirConfigError("At least one fold is required")
    if any(log_k < 1 for log_k in lf):
        raise StirConfigError(f"Folding factors must be at least 2, got 2^{list(lf)}")
    if parameters.log_starting_degree < 0 or parameters.log_starting_inv_rate < 1:
        raise StirConfigError("Starting degree must be >= 1 and starting inverse rate >= 2")
    if len(parameters.log_inv_rates) != len(lf):
        raise StirConfigError(
            f"Expected {len(lf)} rates (one per fold), got {len(parameters.log_inv_rates)}"
        )

    rate = parameters.log_starting_inv_rate
    for i, (log_k, log_inv_rate) in enumerate(zip(lf, parameters.log_inv_rates)):
        rate = rate + log_k - 1
        if log_inv_rate != rate:
            raise StirConfigError(
                f"Rate of fold {i} must be 2^-{rate} (previous rate and folding factor 2^{log_k}), "
                f"got 2^-{log_inv_rate}"
            )

    if sum(lf) > parameters.log_starting_degree:
        raise StirConfigError(
            f"Folds by 2^{sum(lf)} in total exceed the starting degree 2^{parameters.log_starting_degree}"
        )

    log_domain = parameters.log_starting_degree + parameters.log_starting_inv_rate
    if log_domain > two_adicity(parameters.field):
        raise StirConfigError(
            f"Starting domain 2^{log_domain} exceeds the field's two-adic subgroup 2^{two_adicity(parameters.field)}"
        )
    for i, log_k in enumerate(lf):
        # Fold i stacks the commitment over a domain of size 2^(log_domain - i)
        if log_k > log_domain - i:
            raise StirConfigError(
                f"Folding factor 2^{log_k} of fold {i} exceeds its domain 2^{log_domain - i}"
            )
