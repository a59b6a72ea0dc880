"""Tests for RuleValidator."""

import pytest

from leadrouter.membership import InMemoryOfficeDirectory, MembershipIndex
from leadrouter.routing.errors import RuleValidationError
from leadrouter.routing.validation import RuleValidator
from tests.factories import RuleFactory


class TestRuleValidator:
    """Tests for write-time rule validation."""

    @pytest.mark.asyncio
    async def test_valid_rule_passes(self, validator: RuleValidator) -> None:
        """Should accept a rule targeting a member of an existing office."""
        await validator.validate(RuleFactory.create(target_office_id="O3", target_consultant_id="X"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("priority", [0, -1, 101])
    async def test_priority_out_of_bounds(self, validator: RuleValidator, priority: int) -> None:
        """Should reject priorities outside the configured range."""
        with pytest.raises(RuleValidationError) as exc_info:
            await validator.validate(RuleFactory.create(priority=priority))

        assert exc_info.value.field == "priority"

    @pytest.mark.asyncio
    async def test_bounds_come_from_configuration(self, membership: MembershipIndex) -> None:
        """Should use the bounds it was constructed with."""
        validator = RuleValidator(membership, min_priority=1, max_priority=1000)

        await validator.validate(RuleFactory.create(priority=500))

    def test_bool_priority_rejected(self, validator: RuleValidator) -> None:
        """Should not accept True as priority 1."""
        with pytest.raises(RuleValidationError):
            validator.check_priority(True)

    @pytest.mark.asyncio
    async def test_unknown_target_office(self, validator: RuleValidator) -> None:
        """Should name target_office_id when the office does not exist."""
        with pytest.raises(RuleValidationError) as exc_info:
            await validator.validate(RuleFactory.create(target_office_id="O9"))

        assert exc_info.value.field == "target_office_id"

    @pytest.mark.asyncio
    async def test_consultant_not_member(self, validator: RuleValidator) -> None:
        """Should name target_consultant_id when the consultant is not a member."""
        with pytest.raises(RuleValidationError) as exc_info:
            await validator.validate(
                RuleFactory.create(target_office_id="O1", target_consultant_id="X")
            )

        assert exc_info.value.field == "target_consultant_id"

    @pytest.mark.asyncio
    async def test_unknown_criteria_office(self, validator: RuleValidator) -> None:
        """Should reject criteria naming an office that does not exist."""
        with pytest.raises(RuleValidationError) as exc_info:
            await validator.validate(RuleFactory.create(office_id="O9"))

        assert exc_info.value.field == "criteria.office_id"

    @pytest.mark.asyncio
    async def test_duplicate_priorities_allowed_by_default(
        self, validator: RuleValidator
    ) -> None:
        """Should allow equal priorities unless configured otherwise."""
        existing = RuleFactory.create(priority=10)

        await validator.validate(RuleFactory.create(priority=10), [existing])

    @pytest.mark.asyncio
    async def test_unique_priorities(self, membership: MembershipIndex) -> None:
        """Should reject a used priority when uniqueness is enabled."""
        validator = RuleValidator(membership, unique_priorities=True)
        existing = RuleFactory.create(priority=10)

        with pytest.raises(RuleValidationError) as exc_info:
            await validator.validate(RuleFactory.create(priority=10), [existing])

        assert exc_info.value.field == "priority"

    @pytest.mark.asyncio
    async def test_unique_priorities_ignores_rule_itself(self, membership: MembershipIndex) -> None:
        """Should not count the rule being updated as a duplicate."""
        validator = RuleValidator(membership, unique_priorities=True)
        rule = RuleFactory.create(priority=10)

        await validator.validate(rule, [rule])

    @pytest.mark.asyncio
    async def test_membership_read_through(
        self, directory: InMemoryOfficeDirectory, validator: RuleValidator
    ) -> None:
        """Should see directory changes on the next validation."""
        rule = RuleFactory.create(target_office_id="O3", target_consultant_id="X")
        await validator.validate(rule)

        await directory.remove_member("O3", "X")

        with pytest.raises(RuleValidationError):
            await validator.validate(rule)
