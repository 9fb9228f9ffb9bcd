"""
Tests for PATCH request schemas
"""

import pytest
from pydantic import ValidationError

from greenpia.api.schemas import HouseholdUpdate, InventoryUpdate, PostUpdate


class TestPartialUpdate:

    def test_omitted_fields_are_not_dumped(self):
        assert InventoryUpdate(qty=3).model_dump(exclude_unset=True) == {'qty': 3}

    def test_null_rejected_for_required_column(self):
        with pytest.raises(ValidationError, match='name cannot be null'):
            InventoryUpdate(name=None)
        with pytest.raises(ValidationError, match='title cannot be null'):
            PostUpdate(title=None)

    def test_null_accepted_for_nullable_column(self):
        update = HouseholdUpdate.model_validate({'move_in_date': None})

        assert update.model_dump(exclude_unset=True) == {'move_in_date': None}
