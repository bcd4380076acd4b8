"""
Shared fixtures.
"""
from typing import Dict, Optional, Tuple

import pytest

from fakes import FakeCompletionService, FakePageTextService
from src.config.settings import Settings
from src.models.document import DocumentInfo, FileType
from src.services import (
    DocumentRegistry,
    QuestionAnalyzer,
    QuestionStore,
    SessionRegistry,
)


@pytest.fixture
def storage_dir(tmp_path):
    path = tmp_path / "files"
    path.mkdir()
    return path


@pytest.fixture
def test_settings(storage_dir, tmp_path):
    return Settings(storage_path=str(storage_dir), log_dir=str(tmp_path / "logs"))


@pytest.fixture
def document_registry(storage_dir):
    return DocumentRegistry(storage_dir)


@pytest.fixture
def question_store(storage_dir):
    return QuestionStore(storage_dir)


@pytest.fixture
def sessions():
    return SessionRegistry()


@pytest.fixture
def register_document(document_registry):
    """Write meta.json for a document and return its info."""
    async def _register(file_id: str = "doc1", total_pages: int = 3, **fields) -> DocumentInfo:
        info = DocumentInfo(
            id=file_id,
            name=fields.pop("name", f"{file_id}.pdf"),
            file_type=fields.pop("file_type", FileType.PDF),
            total_pages=total_pages,
            **fields
        )
        return await document_registry.save(info)

    return _register


@pytest.fixture
def make_analyzer(document_registry, question_store, sessions, test_settings):
    def _make(
        pages: Dict[int, str],
        completion: Optional[FakeCompletionService] = None,
        store: Optional[QuestionStore] = None
    ) -> Tuple[QuestionAnalyzer, FakePageTextService]:
        page_service = FakePageTextService(pages)
        analyzer = QuestionAnalyzer(
            document_registry=document_registry,
            page_text_service=page_service,
            completion_service=completion,
            question_store=store or question_store,
            sessions=sessions,
            settings=test_settings
        )
        return analyzer, page_service

    return _make
