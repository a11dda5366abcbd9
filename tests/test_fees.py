"""Tests for compute budget and priority fee estimation."""

from decimal import Decimal

import pytest
from solders.compute_budget import set_compute_unit_limit
from solders.transaction_status import TransactionErrorInsufficientFundsForRent

from solswap.errors import InsufficientFundsForRentError, SimulationError
from solswap.execution.assembler import deserialize_instructions
from solswap.execution.fees import (
    DEFAULT_PRIORITY_FEE_MICRO_LAMPORTS,
    MAX_COMPUTE_UNITS,
    FeeEstimator,
    PriorityFeeEstimate,
)


class TestPriorityFee:
    """Tests for the priority fee estimator."""

    @pytest.mark.asyncio
    async def test_no_samples_returns_default(self, chain):
        """Test that an empty fee history falls back to 10000 micro-lamports."""
        estimator = FeeEstimator(chain)

        fee = await estimator.estimate_priority_fee()

        assert fee.micro_lamports == DEFAULT_PRIORITY_FEE_MICRO_LAMPORTS == 10000
        assert fee.is_fallback is True
        assert fee.sample_count == 0
        assert fee.sol_amount == Decimal("0.00001")

    @pytest.mark.asyncio
    async def test_mean_is_rounded_up(self, chain):
        """Test ceil(mean) of the samples."""
        chain.fee_samples = [1000, 1001]
        estimator = FeeEstimator(chain)

        fee = await estimator.estimate_priority_fee()

        assert fee.micro_lamports == 1001  # ceil(1000.5)
        assert fee.is_fallback is False
        assert fee.sample_count == 2

    @pytest.mark.asyncio
    async def test_exact_mean_not_bumped(self, chain):
        chain.fee_samples = [0, 0, 300]
        fee = await FeeEstimator(chain).estimate_priority_fee()

        assert fee.micro_lamports == 100

    @pytest.mark.asyncio
    async def test_only_trailing_window_counts(self, chain):
        """Test that only the last 150 samples are averaged."""
        chain.fee_samples = [1_000_000] * 50 + [200] * 150
        fee = await FeeEstimator(chain).estimate_priority_fee()

        assert fee.micro_lamports == 200
        assert fee.sample_count == 150

    @pytest.mark.asyncio
    async def test_fewer_samples_than_window(self, chain):
        chain.fee_samples = [10, 20, 31]
        fee = await FeeEstimator(chain).estimate_priority_fee()

        assert fee.micro_lamports == 21  # ceil(61 / 3)
        assert fee.sample_count == 3

    @pytest.mark.asyncio
    async def test_rpc_failure_returns_default(self, chain):
        """Test that fee lookups never block a swap."""
        chain.fee_error = ConnectionError("rpc down")
        estimator = FeeEstimator(chain, default_priority_fee=5000)

        fee = await estimator.estimate_priority_fee()

        assert fee.micro_lamports == 5000
        assert fee.is_fallback is True

    def test_total_lamports(self):
        fee = PriorityFeeEstimate(micro_lamports=10_000)

        # 10_000 micro-lamports * 200_000 CU = 2_000 lamports
        assert fee.total_lamports(200_000) == 2000
        assert fee.total_lamports(1) == 1  # rounds up


class TestComputeBudget:
    """Tests for simulation-based compute unit estimation."""

    @pytest.mark.asyncio
    async def test_returns_consumed_units(self, chain, keypair, instruction_set, delay_factory, sim_value):
        chain.simulations = [sim_value(units=187_654)]
        estimator = FeeEstimator(chain, simulation_retry_delay=delay_factory())

        result = await estimator.estimate_compute_budget(
            deserialize_instructions(instruction_set), keypair.pubkey(), [], retry_hint=5
        )

        assert result.units_consumed == 187_654
        assert len(chain.simulated) == 1

    @pytest.mark.asyncio
    async def test_simulation_uses_max_compute_limit(self, chain, keypair, instruction_set):
        """Test that the dry-run is not constrained by a compute budget."""
        estimator = FeeEstimator(chain)
        instructions = deserialize_instructions(instruction_set)

        await estimator.estimate_compute_budget(instructions, keypair.pubkey(), [])

        message = chain.simulated[0].message
        first = message.instructions[0]
        expected = set_compute_unit_limit(MAX_COMPUTE_UNITS)
        assert message.account_keys[first.program_id_index] == expected.program_id
        assert bytes(first.data) == bytes(expected.data)
        assert len(message.instructions) == len(instructions) + 1

    @pytest.mark.asyncio
    async def test_rent_shortfall_is_distinct_error(self, chain, keypair, instruction_set, sim_value):
        """Test InsufficientFundsForRent surfaces as its own error type."""
        chain.simulations = [sim_value(units=None, err=TransactionErrorInsufficientFundsForRent(2))]
        estimator = FeeEstimator(chain)

        with pytest.raises(InsufficientFundsForRentError) as exc_info:
            await estimator.estimate_compute_budget(
                deserialize_instructions(instruction_set), keypair.pubkey(), []
            )

        assert exc_info.value.account_index == 2
        # Not retried
        assert len(chain.simulated) == 1

    @pytest.mark.asyncio
    async def test_other_simulation_error(self, chain, keypair, instruction_set, sim_value):
        chain.simulations = [sim_value(units=None, err="BlockhashNotFound", logs=["Program failed"])]
        estimator = FeeEstimator(chain)

        with pytest.raises(SimulationError) as exc_info:
            await estimator.estimate_compute_budget(
                deserialize_instructions(instruction_set), keypair.pubkey(), []
            )

        assert "BlockhashNotFound" in str(exc_info.value)
        assert exc_info.value.logs == ["Program failed"]
        assert len(chain.simulated) == 1

    @pytest.mark.asyncio
    async def test_missing_unit_count_is_error(self, chain, keypair, instruction_set, sim_value):
        chain.simulations = [sim_value(units=None)]

        with pytest.raises(SimulationError):
            await FeeEstimator(chain).estimate_compute_budget(
                deserialize_instructions(instruction_set), keypair.pubkey(), []
            )

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(
        self, chain, keypair, instruction_set, delay_factory, sim_value
    ):
        """Test that RPC failures are retried up to the retry hint."""
        chain.simulations = [TimeoutError("timeout"), ConnectionError("reset"), sim_value(units=90_000)]
        delay = delay_factory()
        estimator = FeeEstimator(chain, simulation_retry_delay=delay)

        result = await estimator.estimate_compute_budget(
            deserialize_instructions(instruction_set), keypair.pubkey(), [], retry_hint=5
        )

        assert result.units_consumed == 90_000
        assert len(chain.simulated) == 3
        assert delay.waits == [0, 1]

    @pytest.mark.asyncio
    async def test_retry_hint_bounds_transport_retries(
        self, chain, keypair, instruction_set, delay_factory
    ):
        chain.simulations = [ConnectionError("down")] * 10
        delay = delay_factory()
        estimator = FeeEstimator(chain, simulation_retry_delay=delay)

        with pytest.raises(SimulationError) as exc_info:
            await estimator.estimate_compute_budget(
                deserialize_instructions(instruction_set), keypair.pubkey(), [], retry_hint=3
            )

        assert "after 3 attempts" in str(exc_info.value)
        assert len(chain.simulated) == 3
        assert delay.waits == [0, 1]
