"""
Tests for Result Pattern Implementation
"""

import pytest
from services.common.result import Result, PagedResult, ErrorCode


class TestResultPattern:
    """Test suite for Result pattern"""

    def test_success_result(self):
        """Test creating a successful result"""
        data = {"id": "b-1", "fullName": "Test Buyer"}
        result = Result.success(data)

        assert result.is_success == True
        assert result.is_failure == False
        assert result.data == data
        assert result.error is None
        assert result.error_code is None
        assert bool(result) == True

    def test_failure_result(self):
        """Test creating a failure result"""
        result = Result.failure("Buyer not found", code=ErrorCode.NOT_FOUND)

        assert result.is_success == False
        assert result.is_failure == True
        assert result.data is None
        assert result.error == "Buyer not found"
        assert result.error_code == 'NOT_FOUND'
        assert bool(result) == False

    def test_failure_with_metadata(self):
        """Validation failures carry the error list in metadata"""
        errors = ["phone is required", "city is required"]
        result = Result.failure("Validation failed", code=ErrorCode.VALIDATION_ERROR,
                                metadata={"errors": errors})

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.metadata["errors"] == errors

    def test_unwrap_success(self):
        result = Result.success([1, 2, 3])

        assert result.unwrap() == [1, 2, 3]

    def test_unwrap_failure_raises(self):
        """Test unwrapping failure result raises error"""
        result = Result.failure("Record has been modified", code=ErrorCode.STALE_DATA)

        with pytest.raises(ValueError) as excinfo:
            result.unwrap()
        assert "Cannot unwrap a failure result" in str(excinfo.value)

    def test_unwrap_or(self):
        assert Result.success("data").unwrap_or("default") == "data"
        assert Result.failure("Error").unwrap_or("default") == "default"

    def test_repr_success(self):
        repr_str = repr(Result.success("data"))

        assert "Result.success" in repr_str
        assert "data='data'" in repr_str

    def test_repr_failure(self):
        repr_str = repr(Result.failure("error", code="CODE"))

        assert "Result.failure" in repr_str
        assert "error='error'" in repr_str
        assert "code='CODE'" in repr_str


class TestPagedResult:
    """Test suite for PagedResult pattern"""

    def test_paginated_result(self):
        """Test creating a paginated result"""
        data = [1, 2, 3, 4, 5]
        result = PagedResult.paginated(data=data, total=100, page=1, per_page=5)

        assert result.is_success == True
        assert result.data == data
        assert result.total == 100
        assert result.page == 1
        assert result.per_page == 5
        assert result.total_pages == 20

    def test_paginated_partial_last_page(self):
        result = PagedResult.paginated(data=[1], total=21, page=3, per_page=10)

        assert result.total_pages == 3
        assert result.has_next is False
        assert result.has_prev is True

    def test_paginated_empty_result(self):
        """Test paginated result with no data"""
        result = PagedResult.paginated(data=[], total=0, page=1, per_page=10)

        assert result.data == []
        assert result.total_pages == 0
        assert result.has_next is False
        assert result.has_prev is False

    def test_pagination_block(self):
        """Pagination metadata uses the list endpoint's camelCase keys"""
        result = PagedResult.paginated(data=['a', 'b'], total=25, page=2, per_page=10)

        assert result.pagination() == {
            'page': 2,
            'pageSize': 10,
            'total': 25,
            'totalPages': 3,
            'hasNext': True,
            'hasPrev': True,
        }
