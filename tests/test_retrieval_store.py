"""
Tests for the retrieval store.
"""
import json

import pytest

from src.models.fragment import DocType, Fragment, FragmentMetadata
from src.services.retrieval_store import RetrievalStore
from src.utils.exceptions import DataValidationError, PersistenceError


def make_fragment(doc_id, content, doc_type=DocType.KNOWLEDGE.value, chapter="", page=1):
    return Fragment(
        id=doc_id,
        content=content,
        metadata=FragmentMetadata(
            file_id="doc1",
            page_number=page,
            doc_type=doc_type,
            chapter=chapter
        )
    )


@pytest.fixture
def index_path(tmp_path):
    return tmp_path / "doc1" / "rag_index.json"


@pytest.fixture
async def store(index_path):
    return await RetrievalStore.open(index_path)


class TestAddDocument:
    """添加片段测试"""

    async def test_add_persists_index(self, store, index_path):
        assert await store.add_document(make_fragment("k1", "极限的定义"))

        assert len(store) == 1
        data = json.loads(index_path.read_text(encoding="utf-8"))
        assert data[0]["id"] == "k1"
        assert data[0]["metadata"]["doc_type"] == "knowledge"

    async def test_duplicate_id_is_noop(self, store):
        await store.add_document(make_fragment("k1", "first"))
        added = await store.add_document(make_fragment("k1", "second"))

        assert added is False
        assert len(store) == 1
        assert store.get("k1").content == "first"

    async def test_add_documents_counts_new_only(self, store):
        docs = [make_fragment("a", "x"), make_fragment("b", "y"), make_fragment("a", "z")]
        assert await store.add_documents(docs) == 2
        assert [doc.id for doc in store.documents] == ["a", "b"]

    async def test_reload_keeps_insertion_order(self, store, index_path):
        for doc_id in ("c", "a", "b"):
            await store.add_document(make_fragment(doc_id, doc_id))

        reloaded = await RetrievalStore.open(index_path)
        assert [doc.id for doc in reloaded.documents] == ["c", "a", "b"]

    async def test_write_failure_rolls_back(self, store, index_path):
        await store.add_document(make_fragment("k1", "ok"))
        # 临时文件路径被目录占用，写入必然失败
        (index_path.parent / "rag_index.json.tmp").mkdir()

        with pytest.raises(PersistenceError):
            await store.add_document(make_fragment("k2", "lost"))

        assert len(store) == 1
        assert store.get("k2") is None


class TestLoadIndex:
    """索引加载测试"""

    async def test_missing_file_is_empty(self, store):
        assert store.is_empty()
        assert store.get_stats()["index_file_exists"] is False

    async def test_malformed_index_raises(self, index_path):
        index_path.parent.mkdir(parents=True)
        index_path.write_text("{not json", encoding="utf-8")

        with pytest.raises(DataValidationError):
            await RetrievalStore.open(index_path)

    async def test_duplicate_ids_on_disk_are_collapsed(self, index_path):
        index_path.parent.mkdir(parents=True)
        entries = [make_fragment("a", "one").to_dict(), make_fragment("a", "two").to_dict()]
        index_path.write_text(json.dumps(entries), encoding="utf-8")

        store = await RetrievalStore.open(index_path)
        assert len(store) == 1
        assert store.get("a").content == "one"

    async def test_open_loads_existing_index(self, store, index_path):
        await store.add_document(make_fragment("k1", "极限"))

        assert RetrievalStore(index_path).is_empty()
        reopened = await RetrievalStore.open(index_path)
        assert [doc.id for doc in reopened.documents] == ["k1"]


class TestSearch:
    """词法检索测试"""

    async def test_example_outranks_knowledge(self, store):
        await store.add_document(make_fragment("d1", "the derivative of x"))
        await store.add_document(
            make_fragment("d2", "the derivative of x^2", doc_type=DocType.EXAMPLE.value)
        )

        results = store.search("derivative x", top_k=5)

        assert [r.fragment.id for r in results] == ["d2", "d1"]
        assert results[0].score == pytest.approx(3.0)
        assert results[1].score == pytest.approx(2.4)

    async def test_zero_score_documents_dropped(self, store):
        await store.add_document(make_fragment("a", "integral"))
        await store.add_document(make_fragment("b", "derivative"))

        results = store.search("derivative", top_k=10)
        assert [r.fragment.id for r in results] == ["b"]

    async def test_top_k_limits_results(self, store):
        for i in range(5):
            await store.add_document(make_fragment(f"k{i}", "limit"))

        assert len(store.search("limit", top_k=3)) == 3
        assert store.search("limit", top_k=0) == []

    async def test_ties_keep_insertion_order(self, store):
        for doc_id in ("z", "m", "a"):
            await store.add_document(make_fragment(doc_id, "Matrix rank"))

        results = store.search("matrix", top_k=10)
        assert [r.fragment.id for r in results] == ["z", "m", "a"]

    async def test_unknown_type_uses_default_weight(self, store):
        await store.add_document(make_fragment("n", "vector", doc_type="note"))

        results = store.search("vector", top_k=1)
        assert results[0].score == pytest.approx(0.8)

    async def test_empty_query_returns_nothing(self, store):
        assert store.search("   ", top_k=5) == []


class TestBuildContext:
    """上下文构建测试"""

    async def test_entry_format(self, store):
        await store.add_document(
            make_fragment("e1", "求导数", doc_type=DocType.EXAMPLE.value, chapter="第一章")
        )
        await store.add_document(make_fragment("k1", "导数定义"))

        context = store.build_context("导数", max_tokens=1000)

        assert context == "【example】（第一章）\n求导数\n\n【knowledge】\n导数定义\n\n"

    async def test_context_respects_token_budget(self, store):
        for i in range(10):
            await store.add_document(make_fragment(f"k{i}", "series " + "x" * 40))

        for budget in (0, 5, 20, 60):
            context = store.build_context("series", max_tokens=budget)
            assert len(context) / 4 <= budget

    async def test_empty_store_gives_empty_context(self, store):
        assert store.build_context("anything", max_tokens=100) == ""


class TestFilters:
    """过滤与清空测试"""

    async def test_filters_return_stored_objects(self, store):
        await store.add_document(make_fragment("k1", "a", chapter="第一章"))
        await store.add_document(
            make_fragment("e1", "b", doc_type=DocType.EXAMPLE.value, chapter="第二章")
        )

        assert [doc.id for doc in store.get_examples()] == ["e1"]
        assert [doc.id for doc in store.get_knowledge()] == ["k1"]
        assert store.get_by_chapter("第一章")[0] is store.documents[0]
        assert store.get_stats()["by_type"] == {"knowledge": 1, "example": 1}

    async def test_clear_empties_index(self, store, index_path):
        await store.add_document(make_fragment("k1", "a"))
        await store.clear()

        assert store.is_empty()
        assert json.loads(index_path.read_text(encoding="utf-8")) == []
