"""Unit tests for the quota configuration value objects."""

import pytest

from quotaguard.core.exceptions import ConfigurationError
from quotaguard.domain.rate_limiting.value_objects import (
    FREE_PLAN,
    Plan,
    PlanCatalog,
    QuotaConfig,
    RateLimitKeys,
    Tier,
)


class TestTier:
    """Tests for a single quota rule."""

    def test_precision_defaults_to_duration(self):
        tier = Tier(duration=60, threshold=10)

        assert tier.effective_precision == 60
        assert tier.blocks == 1
        assert tier.count_field == "60:60:"
        assert tier.timestamp_field == "60:60:o"

    def test_precision_is_clamped_to_duration(self):
        """A bucket can never be wider than the window itself."""
        tier = Tier(duration=10, threshold=5, precision=3600)

        assert tier.effective_precision == 10
        assert tier.blocks == 1

    def test_blocks_round_up(self):
        tier = Tier(duration=10, threshold=5, precision=3)

        assert tier.blocks == 4
        assert tier.bucket_field(42) == "10:3:42"

    def test_block_id_and_trim_before(self):
        tier = Tier(duration=10, threshold=5, precision=5)

        assert tier.block_id(104) == 20
        assert tier.trim_before(104) == 19

    @pytest.mark.parametrize("duration", [0, -5])
    def test_duration_must_be_positive(self, duration):
        with pytest.raises(ConfigurationError):
            Tier(duration=duration, threshold=1)

    def test_precision_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            Tier(duration=10, threshold=1, precision=0)

    def test_non_integer_values_rejected(self):
        with pytest.raises(ConfigurationError):
            Tier(duration=1.5, threshold=1)
        with pytest.raises(ConfigurationError):
            Tier(duration=10, threshold="5")

    def test_zero_threshold_is_accepted(self):
        """A zero threshold is valid configuration: the tier denies everything."""
        assert Tier(duration=10, threshold=0).threshold == 0

    def test_parse_sequence_forms(self):
        assert Tier.parse([1, 5]) == Tier(1, 5)
        assert Tier.parse((86400, 20000, 3600)) == Tier(86400, 20000, 3600)

    def test_parse_mapping_form(self):
        assert Tier.parse({"duration": 60, "threshold": 100}) == Tier(60, 100)
        assert Tier.parse({"duration": 60, "threshold": 100, "precision": 10}) == Tier(60, 100, 10)

    def test_parse_rejects_malformed_definitions(self):
        with pytest.raises(ConfigurationError):
            Tier.parse([1])
        with pytest.raises(ConfigurationError):
            Tier.parse([1, 2, 3, 4])
        with pytest.raises(ConfigurationError):
            Tier.parse({"duration": 60})
        with pytest.raises(ConfigurationError):
            Tier.parse("1/second")

    def test_payload_form(self):
        assert Tier(1, 5).as_payload() == [1, 5]
        assert Tier(60, 5, 10).as_payload() == [60, 5, 10]

    def test_configuration_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            Tier(duration=0, threshold=1)


class TestPlan:
    """Tests for named tier sets."""

    def test_tiers_keep_configured_order(self):
        plan = Plan.from_config("gold", {"limits": [[86400, 20000], [1, 5]]})

        assert plan.tiers == (Tier(86400, 20000), Tier(1, 5))
        assert plan.longest_duration == 86400

    def test_empty_plan_rejected(self):
        with pytest.raises(ConfigurationError, match="at least one tier"):
            Plan.from_config("empty", {"limits": []})

    def test_missing_limits_rejected(self):
        with pytest.raises(ConfigurationError):
            Plan.from_config("broken", {})

    def test_bare_limit_list_accepted(self):
        assert Plan.from_config("bare", [[1, 2]]).tiers == (Tier(1, 2),)


class TestPlanCatalog:
    """Tests for the configured plan catalog."""

    def test_guests_allowed_only_with_free_plan(self):
        with_free = PlanCatalog.from_config({FREE_PLAN: {"limits": [[1, 2]]}})
        without_free = PlanCatalog.from_config({"whatever": {"limits": [[1, 2]]}})

        assert with_free.allows_guests
        assert with_free.free_plan.tiers == (Tier(1, 2),)
        assert not without_free.allows_guests
        assert without_free.free_plan is None

    def test_lookup_of_unknown_plan_returns_none(self):
        catalog = PlanCatalog.from_config({"gold": {"limits": [[1, 10]]}})

        assert catalog.get("gold").name == "gold"
        assert catalog.get("silver") is None
        assert "gold" in catalog
        assert len(catalog) == 1

    def test_catalog_is_read_only(self):
        catalog = PlanCatalog.from_config({"gold": {"limits": [[1, 10]]}})

        with pytest.raises(TypeError):
            catalog.plans["silver"] = catalog.plans["gold"]

    def test_empty_configuration(self):
        assert len(PlanCatalog.from_config(None)) == 0
        assert not PlanCatalog.from_config({}).allows_guests

    def test_non_mapping_rejected(self):
        with pytest.raises(ConfigurationError):
            PlanCatalog.from_config([["free", [[1, 2]]]])


class TestRateLimitKeys:
    """Tests for store key construction."""

    def test_token_keys_are_namespaced(self):
        keys = RateLimitKeys("api")

        assert keys.plan_key("abc") == "api:rl:abc"
        assert keys.token_hit_key("abc") == "api:rl:hit:abc"

    def test_guest_keys_ignore_namespace_by_default(self):
        assert RateLimitKeys("api").guest_hit_key("10.0.0.1") == "rl:hit:10.0.0.1"

    def test_guest_keys_can_be_namespaced(self):
        keys = RateLimitKeys("api", namespace_guest_keys=True)

        assert keys.guest_hit_key("10.0.0.1") == "api:rl:hit:ip:10.0.0.1"

    def test_empty_namespace(self):
        assert RateLimitKeys().plan_key("abc") == ":rl:abc"


def test_quota_config_caching_switch():
    catalog = PlanCatalog.from_config({})

    assert QuotaConfig(catalog, cache_ttl=3600).caching_enabled
    assert not QuotaConfig(catalog, cache_ttl=0).caching_enabled
    assert not QuotaConfig(catalog, cache_ttl=-1).caching_enabled
    assert QuotaConfig(catalog, namespace="ns").keys == RateLimitKeys("ns")
