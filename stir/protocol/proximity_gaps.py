"""Proximity-gap soundness bounds for Reed-Solomon codes.

All quantities are in bits (log2). A rate rho = 2^-log_inv_rate code with
degree bound 2^log_degree is queried at distance delta; the security
assumption chooses which decoding regime bounds delta and the list size.

These are pure functions: StirConfig evaluates them once and stores the
results as protocol constants.
"""

import math
from enum import Enum

LOG2_10 = math.log2(10)
MAX_OOD_SAMPLES = 64


class SecurityAssumption(Enum):
    """Which proximity-gap regime the soundness analysis relies on."""

    UNIQUE_DECODING = "unique_decoding"
    """Provable; delta up to (1 - rho) / 2, list size 1."""

    JOHNSON_BOUND = "johnson_bound"
    """Provable; delta up to 1 - sqrt(rho) - eta."""

    CAPACITY_BOUND = "capacity_bound"
    """Conjectured; delta up to 1 - rho - eta."""

    # --- Distance & list size ---

    def log_eta(self, log_inv_rate: int) -> float:
        """Log of the slack eta between delta and the decoding radius."""
        if self is SecurityAssumption.UNIQUE_DECODING:
            return 0.0
        if self is SecurityAssumption.JOHNSON_BOUND:
            return -(0.5 * log_inv_rate + LOG2_10 + 1.0)
        return -(log_inv_rate + LOG2_10 + 1.0)

    def list_size_bits(self, log_degree: int, log_inv_rate: int) -> float:
        """Log of the list size at distance delta."""
        log_eta = self.log_eta(log_inv_rate)
        if self is SecurityAssumption.UNIQUE_DECODING:
            return 0.0
        if self is SecurityAssumption.JOHNSON_BOUND:
            return 0.5 * log_inv_rate - (1.0 + log_eta)
        return (log_degree + log_inv_rate) - log_eta

    def log_1_delta(self, log_inv_rate: int) -> float:
        """Return log2(1 - delta), the per-query escape probability."""
        eta = 2.0 ** self.log_eta(log_inv_rate)
        rate = 2.0 ** -log_inv_rate
        if self is SecurityAssumption.UNIQUE_DECODING:
            delta = (1.0 - rate) / 2.0
        elif self is SecurityAssumption.JOHNSON_BOUND:
            delta = 1.0 - math.sqrt(rate) - eta
        else:
            delta = 1.0 - rate - eta
        return math.log2(1.0 - delta)

    # --- Errors ---

    def prox_gaps_error(self, log_degree: int, log_inv_rate: int, field_bits: int, num_functions: int) -> float:
        """Bits of security of a random linear combination of num_functions words.

        Raises:
            ValueError: If num_functions < 2
        """
        if num_functions < 2:
            raise ValueError(f"num_functions must be at least 2, got {num_functions}")
        log_eta = self.log_eta(log_inv_rate)

        if self is SecurityAssumption.UNIQUE_DECODING:
            error = float(log_degree + log_inv_rate)
        elif self is SecurityAssumption.JOHNSON_BOUND:
            # (m + 1/2)^7 |L|^2 / (3 rho^(3/2)), m = max(ceil(sqrt(rho) / (2 eta)), 3)
            sqrt_rate = 2.0 ** (-0.5 * log_inv_rate)
            m = max(math.ceil(sqrt_rate / (2.0 * 2.0 ** log_eta)), 3)
            error = (
                7.0 * math.log2(m + 0.5)
                + 2.0 * (log_degree + log_inv_rate)
                + 1.5 * log_inv_rate
                - math.log2(3)
            )
        else:
            error = (log_degree + log_inv_rate) - log_eta

        return field_bits - (error + math.log2(num_functions - 1))

    def queries(self, protocol_security_level: float, log_inv_rate: int) -> int:
        """Number of queries reaching protocol_security_level bits."""
        if protocol_security_level <= 0:
            return 0
        return math.ceil(-protocol_security_level / self.log_1_delta(log_inv_rate))

    def queries_error(self, log_inv_rate: int, num_queries: int) -> float:
        """Bits of security of num_queries independent queries."""
        return -num_queries * self.log_1_delta(log_inv_rate)

    def ood_error(self, log_degree: int, log_inv_rate: int, field_bits: int, ood_samples: int) -> float:
        """Bits of security of ood_samples out-of-domain samples pinning one codeword."""
        if self is SecurityAssumption.UNIQUE_DECODING:
            return 0.0
        list_size_bits = self.list_size_bits(log_degree, log_inv_rate)
        error = 2.0 * list_size_bits + log_degree * ood_samples
        return ood_samples * field_bits + 1.0 - error

    def determine_ood_samples(self, security_level: float, log_degree: int, log_inv_rate: int, field_bits: int) -> int:
        """Smallest number of OOD samples whose error reaches security_level.

        Raises:
            ValueError: If no count up to MAX_OOD_SAMPLES suffices
        """
        if self is SecurityAssumption.UNIQUE_DECODING:
            return 0
        for ood_samples in range(1, MAX_OOD_SAMPLES + 1):
            if self.ood_error(log_degree, log_inv_rate, field_bits, ood_samples) >= security_level:
                return ood_samples
        raise ValueError(
            f"No OOD sample count up to {MAX_OOD_SAMPLES} reaches {security_level} bits "
            f"(field of {field_bits} bits)"
        )
