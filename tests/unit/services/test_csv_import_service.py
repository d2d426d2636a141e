"""
Tests for CSVImportService using mocked repositories
"""

import io
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from repositories.buyer_repository import BuyerRepository
from repositories.buyer_history_repository import BuyerHistoryRepository
from services.csv_import_service import CSVImportService

HEADER = 'fullName,email,phone,city,propertyType,bhk,purpose,budgetMin,budgetMax,timeline,source,notes,tags,status'
VALID_ROW = 'Rahul Sharma,rahul@example.com,9876543210,Chandigarh,Apartment,Two,Buy,4000000,6000000,ZeroToThree,Website,,,New'
INVALID_ROW = 'Priya,,123,Chandigarh,Apartment,Two,Buy,,,ZeroToThree,Website,,,New'


def csv_upload(*lines, filename='buyers.csv', content_type='text/csv'):
    data = '\n'.join(lines).encode('utf-8')
    return FileStorage(stream=io.BytesIO(data), filename=filename, content_type=content_type)


class RecordingStream(io.BytesIO):
    """BytesIO that remembers how many bytes each read asked for"""

    def __init__(self, data):
        super().__init__(data)
        self.read_sizes = []

    def read(self, size=-1):
        self.read_sizes.append(size)
        return super().read(size)


def saved_buyers(rows):
    buyers = []
    for index, row in enumerate(rows):
        buyer = Mock()
        buyer.id = f'buyer-{index}'
        buyer.to_dict.return_value = {'id': buyer.id, 'fullName': row['full_name']}
        buyers.append(buyer)
    return buyers


@pytest.fixture
def buyer_repository():
    repository = Mock(spec=BuyerRepository)
    repository.create_many.side_effect = saved_buyers
    return repository


@pytest.fixture
def history_repository():
    return Mock(spec=BuyerHistoryRepository)


@pytest.fixture
def service(buyer_repository, history_repository):
    return CSVImportService(buyer_repository, history_repository)


class TestFileValidation:
    """Test suite for file-level rejection"""

    def test_missing_file(self, service, buyer_repository):
        result = service.import_from_file(None, 'user-1')

        assert result.success is False
        assert result.total_rows == 0
        assert [e.to_dict() for e in result.errors] == [{'row': 0, 'errors': ['No file provided']}]
        buyer_repository.create_many.assert_not_called()

    def test_file_too_large(self, buyer_repository, history_repository):
        service = CSVImportService(buyer_repository, history_repository, max_file_size=50)
        result = service.import_from_file(csv_upload(HEADER, VALID_ROW), 'user-1')

        assert result.errors[0].row == 0
        assert 'exceeds maximum allowed size' in result.errors[0].errors[0]

    def test_oversized_file_is_not_read(self, buyer_repository, history_repository):
        stream = RecordingStream(b'x' * 1000)
        upload = FileStorage(stream=stream, filename='buyers.csv', content_type='text/csv')
        service = CSVImportService(buyer_repository, history_repository, max_file_size=50)

        check = service.validate_file(upload)

        assert not check.is_valid
        assert check.size == 1000
        assert stream.read_sizes == []

    def test_read_is_bounded_by_size_limit(self, buyer_repository, history_repository):
        data = '\n'.join([HEADER, VALID_ROW]).encode('utf-8')
        stream = RecordingStream(data)
        upload = FileStorage(stream=stream, filename='buyers.csv', content_type='text/csv')
        service = CSVImportService(buyer_repository, history_repository, max_file_size=len(data))

        check = service.validate_file(upload)

        assert check.is_valid
        assert check.content == data
        assert stream.read_sizes == [len(data) + 1]

    def test_wrong_type_and_extension(self, service):
        upload = csv_upload(HEADER, VALID_ROW, filename='buyers.xlsx', content_type='application/vnd.ms-excel')
        result = service.import_from_file(upload, 'user-1')

        assert result.errors[0].errors == ['Invalid file type. Expected CSV file, got application/vnd.ms-excel']

    def test_csv_extension_accepted_with_generic_type(self, service):
        upload = csv_upload(HEADER, VALID_ROW, content_type='application/octet-stream')
        result = service.import_from_file(upload, 'user-1')

        assert result.success

    def test_plain_text_type_accepted(self, service):
        upload = csv_upload(HEADER, VALID_ROW, filename='export.txt', content_type='text/plain')

        assert service.import_from_file(upload, 'user-1').success

    def test_empty_file(self, service):
        result = service.import_from_file(csv_upload(''), 'user-1')

        assert result.errors[0].errors == ['File is empty']

    def test_non_utf8_file(self, service):
        upload = FileStorage(stream=io.BytesIO(b'fullName,phone\n\xff\xfe,1'),
                             filename='buyers.csv', content_type='text/csv')
        result = service.import_from_file(upload, 'user-1')

        assert result.errors[0].errors == ['File must be UTF-8 encoded text']

    def test_utf8_bom_is_tolerated(self, service):
        data = ('\ufeff' + HEADER + '\n' + VALID_ROW).encode('utf-8')
        upload = FileStorage(stream=io.BytesIO(data), filename='buyers.csv', content_type='text/csv')

        assert service.import_from_file(upload, 'user-1').successful_imports == 1


class TestImportRows:
    """Test suite for per-row processing"""

    def test_valid_rows_are_inserted_with_history(self, service, buyer_repository, history_repository):
        result = service.import_from_file(csv_upload(HEADER, VALID_ROW, VALID_ROW), 'user-1')

        assert result.success
        assert result.total_rows == 2
        assert result.successful_imports == 2
        assert result.failed_imports == 0
        assert result.errors == []

        staged = buyer_repository.create_many.call_args[0][0]
        assert staged[0]['full_name'] == 'Rahul Sharma'
        assert staged[0]['owner_id'] == 'user-1'
        assert staged[0]['tags'] == '[]'
        assert staged[0]['status'] == 'New'
        assert staged[0]['budget_min'] == 4000000

        entries = history_repository.record_many.call_args[0][0]
        assert len(entries) == 2
        assert entries[0]['changed_by'] == 'user-1'
        assert 'imported' in entries[0]['diff']
        buyer_repository.commit.assert_called_once()

    def test_invalid_rows_are_reported_and_skipped(self, service, buyer_repository):
        result = service.import_from_file(csv_upload(HEADER, VALID_ROW, INVALID_ROW), 'user-1')

        assert result.successful_imports == 1
        assert result.failed_imports == 1
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.row == 3
        assert error.errors == ['phone must be 10-15 digits (provided: 123)']
        assert error.data['fullName'] == 'Priya'
        assert len(buyer_repository.create_many.call_args[0][0]) == 1

    def test_nothing_inserted_when_every_row_fails(self, service, buyer_repository):
        result = service.import_from_file(csv_upload(HEADER, INVALID_ROW), 'user-1')

        assert result.success is False
        assert result.failed_imports == 1
        buyer_repository.create_many.assert_not_called()

    def test_row_warnings_are_prefixed(self, service):
        row = VALID_ROW.replace('Chandigarh', 'chd')
        result = service.import_from_file(csv_upload(HEADER, row), 'user-1')

        assert result.success
        assert result.warnings == ["Row 2: city 'chd' was mapped to 'Chandigarh'"]

    def test_tags_are_stored_as_json(self, service, buyer_repository):
        row = VALID_ROW.replace(',,,New', ',,"hot, investor",New')
        service.import_from_file(csv_upload(HEADER, row), 'user-1')

        staged = buyer_repository.create_many.call_args[0][0]
        assert staged[0]['tags'] == '["hot", "investor"]'

    def test_missing_required_header(self, service, buyer_repository):
        header = HEADER.replace(',source', '')
        row = VALID_ROW.replace(',Website', '')
        result = service.import_from_file(csv_upload(header, row), 'user-1')

        assert result.successful_imports == 0
        assert result.errors[0].row == 0
        assert result.errors[0].errors == ['Missing required headers: source']
        buyer_repository.create_many.assert_not_called()

    def test_apartment_without_bhk_column(self, service):
        upload = csv_upload(
            'fullName,phone,city,propertyType,purpose,timeline,source',
            'John,9876543210,Chandigarh,Apartment,Buy,ZeroToThree,Website'
        )
        result = service.import_from_file(upload, 'user-1')

        assert result.failed_imports == 1
        assert result.errors[0].errors == ['bhk is required for Apartment properties']

    def test_row_cap(self, service, buyer_repository):
        lines = [HEADER] + [VALID_ROW] * 1500
        result = service.import_from_file(csv_upload(*lines), 'user-1')

        assert result.total_rows == 1000
        assert result.successful_imports == 1000
        assert result.warnings == ['CSV contains 1500 rows. Only first 1000 rows will be processed.']
        assert len(buyer_repository.create_many.call_args[0][0]) == 1000

    def test_unparseable_file_reports_parser_error(self, service):
        result = service.import_from_file(csv_upload(HEADER), 'user-1')

        assert [e.errors for e in result.errors] == [
            ['CSV must have at least a header row and one data row'],
            ['No valid data rows found in CSV'],
        ]

    def test_parser_warning_for_missing_status(self, service):
        short_row = VALID_ROW[:-len(',New')]
        result = service.import_from_file(csv_upload(HEADER, *([VALID_ROW] * 5), short_row), 'user-1')

        assert result.successful_imports == 6
        assert result.warnings == ["Row 7: Row had 13 columns, expected 14. Added default status 'New'."]

    def test_unexpected_row_failure_is_recorded(self, service, monkeypatch):
        from services import csv_import_service as module

        def explode(row):
            raise RuntimeError('boom')

        monkeypatch.setattr(module.FieldNormalizer, 'clean', staticmethod(explode))
        result = service.import_from_file(csv_upload(HEADER, VALID_ROW), 'user-1')

        assert result.failed_imports == 1
        assert result.errors[0].row == 2
        assert result.errors[0].errors == ['Row processing failed: boom']


class TestStorageFailure:
    """Test suite for bulk insert failure handling"""

    def test_database_failure_fails_whole_batch(self, service, buyer_repository):
        buyer_repository.create_many.side_effect = SQLAlchemyError('disk full')
        result = service.import_from_file(csv_upload(HEADER, VALID_ROW, VALID_ROW, INVALID_ROW), 'user-1')

        assert result.success is False
        assert result.successful_imports == 0
        assert result.failed_imports == 3
        assert result.errors[-1].row == 0
        assert result.errors[-1].errors[0].startswith('Database import failed: ')
        buyer_repository.rollback.assert_called_once()
        buyer_repository.commit.assert_not_called()

    def test_history_failure_rolls_back(self, service, buyer_repository, history_repository):
        history_repository.record_many.side_effect = SQLAlchemyError('constraint')
        result = service.import_from_file(csv_upload(HEADER, VALID_ROW), 'user-1')

        assert result.successful_imports == 0
        assert result.failed_imports == 1
        buyer_repository.rollback.assert_called_once()

    def test_unexpected_failure_never_escapes(self, service, monkeypatch):
        from services import csv_import_service as module

        def explode(content):
            raise RuntimeError('parser crashed')

        monkeypatch.setattr(module.CSVParser, 'parse', staticmethod(explode))
        result = service.import_from_file(csv_upload(HEADER, VALID_ROW), 'user-1')

        assert result.success is False
        assert result.errors[0].to_dict() == {'row': 0, 'errors': ['Import process failed: parser crashed']}

    def test_result_payload_shape(self, service):
        payload = service.import_from_file(csv_upload(HEADER, VALID_ROW, INVALID_ROW), 'user-1').to_dict()

        assert set(payload) == {'success', 'totalRows', 'successfulImports', 'failedImports', 'errors', 'warnings'}
        assert payload['errors'][0]['row'] == 3
        assert payload['errors'][0]['data']['phone'] == '123'
