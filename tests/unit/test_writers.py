"""
Unit tests for manifest reading and the CSV/artifact writers
"""

import csv
import zipfile

import pytest

from conftest import make_cid, make_item
from property_oracle.core.errors import ManifestError
from property_oracle.core.models import BatchSubmissionResult, HashedDocument, TransactionRecord
from property_oracle.readers import ManifestReader
from property_oracle.writers import (
    LEDGER_HEADER,
    MANIFEST_HEADER,
    ArtifactWriter,
    CsvReporter,
    HashManifestWriter,
    TransactionLedger,
)
from property_oracle.writers.report_writer import ERROR_HEADER, WARNING_HEADER


def read_rows(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


# =======================
# MANIFEST READER
# =======================

@pytest.mark.unit
class TestManifestReader:
    """Tests for ManifestReader"""

    def write_manifest(self, path, rows, header="propertyCid,dataGroupCid,dataCid,filePath,uploadedAt"):
        path.write_text(header + "\n" + "\n".join(rows) + "\n", encoding="utf-8")
        return path

    def test_rows_in_order(self, tmp_path):
        items = [make_item(i) for i in range(3)]
        path = self.write_manifest(tmp_path / "m.csv", [
            f"{i.property_cid},{i.data_group_cid},{i.data_cid},p/{n}.json,2025-01-0{n + 1}T00:00:00Z"
            for n, i in enumerate(items)
        ])

        read = ManifestReader().read(path)

        assert [r.data_cid for r in read] == [i.data_cid for i in items]
        assert [r.row_number for r in read] == [1, 2, 3]
        assert read[0].file_path == "p/0.json"
        assert read[0].uploaded_at == "2025-01-01T00:00:00Z"

    def test_blank_lines_skipped(self, tmp_path):
        item = make_item(0)
        row = f"{item.property_cid},{item.data_group_cid},{item.data_cid},,"
        path = self.write_manifest(tmp_path / "m.csv", [row, "", ",,,,", row])
        assert len(ManifestReader().read(path)) == 2

    def test_leading_dot_cids(self, tmp_path):
        item = make_item(0)
        path = self.write_manifest(tmp_path / "m.csv", [
            f".{item.property_cid},.{item.data_group_cid},.{item.data_cid},,"
        ])
        assert ManifestReader().read(path)[0].property_cid == item.property_cid

    def test_hash_manifest_columns_accepted(self, tmp_path):
        item = make_item(0)
        path = self.write_manifest(
            tmp_path / "m.csv",
            [f"{item.property_cid},{item.data_group_cid},{item.data_cid},x.json,,2025-06-01T00:00:00Z"],
            header=",".join(MANIFEST_HEADER),
        )
        assert ManifestReader().read(path)[0].uploaded_at == "2025-06-01T00:00:00Z"

    def test_missing_columns(self, tmp_path):
        path = self.write_manifest(tmp_path / "m.csv", ["a,b"], header="propertyCid,dataCid")
        with pytest.raises(ManifestError, match="dataGroupCid"):
            ManifestReader().read(path)

    def test_invalid_cid_names_row(self, tmp_path):
        item = make_item(0)
        path = self.write_manifest(tmp_path / "m.csv", [
            f"{item.property_cid},{item.data_group_cid},{item.data_cid},,",
            f"{item.property_cid},not-a-cid,{item.data_cid},,",
        ])
        with pytest.raises(ManifestError) as exc_info:
            ManifestReader().read(path)
        assert exc_info.value.row_number == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError):
            ManifestReader().read(tmp_path / "nope.csv")

    def test_byte_order_mark_ignored(self, tmp_path):
        item = make_item(0)
        path = tmp_path / "bom.csv"
        path.write_text(
            f"propertyCid,dataGroupCid,dataCid\n{item.property_cid},{item.data_group_cid},{item.data_cid}\n",
            encoding="utf-8-sig",
        )
        assert ManifestReader().read(path)[0].property_cid == item.property_cid

    def test_non_utf8_bytes_rejected(self, tmp_path):
        item = make_item(0)
        path = tmp_path / "latin1.csv"
        path.write_bytes(
            f"propertyCid,dataGroupCid,dataCid,filePath\n{item.property_cid},{item.data_group_cid},{item.data_cid},"
            "caf\u00e9.json\n".encode("latin-1")
        )
        with pytest.raises(ManifestError, match="not valid"):
            ManifestReader().read(path)


# =======================
# TRANSACTION LEDGER
# =======================

@pytest.mark.unit
class TestTransactionLedger:
    """Tests for TransactionLedger"""

    def test_record_appends_pending_rows(self, tmp_path):
        ledger = TransactionLedger(tmp_path / "ledger.csv")
        ledger.record(BatchSubmissionResult(batch_index=0, transaction_hash="0x01", items_submitted=200))
        ledger.record(BatchSubmissionResult(batch_index=1, transaction_hash="0x02", items_submitted=5))

        rows = read_rows(ledger.path)
        assert rows[0] == LEDGER_HEADER
        assert [r[0] for r in rows[1:]] == ["0x01", "0x02"]
        assert [r[4] for r in rows[1:]] == ["pending", "pending"]

    def test_results_without_hash_not_recorded(self, tmp_path):
        ledger = TransactionLedger(tmp_path / "ledger.csv")
        assert ledger.record(BatchSubmissionResult(batch_index=0, items_submitted=1)) is None
        assert not ledger.path.exists()

    def test_read_back(self, tmp_path):
        ledger = TransactionLedger(tmp_path / "ledger.csv")
        ledger.append(TransactionRecord(transaction_hash="0x01", batch_index=0, item_count=3))

        records = ledger.read()
        assert len(records) == 1
        assert records[0].item_count == 3
        assert records[0].status == "pending"

    def test_rewrite_replaces_rows(self, tmp_path):
        ledger = TransactionLedger(tmp_path / "ledger.csv")
        record = TransactionRecord(transaction_hash="0x01", batch_index=0, item_count=3)
        ledger.append(record)

        ledger.rewrite([record.model_copy(update={"status": "success"})])

        assert [r.status for r in ledger.read()] == ["success"]
        assert [p.name for p in tmp_path.iterdir()] == ["ledger.csv"]

    def test_read_missing_ledger(self, tmp_path):
        assert TransactionLedger(tmp_path / "none.csv").read() == []

    def test_malformed_row(self, tmp_path):
        path = tmp_path / "ledger.csv"
        path.write_text(",".join(LEDGER_HEADER) + "\n0x01,zero,3,2025,pending\n", encoding="utf-8")
        with pytest.raises(ManifestError):
            TransactionLedger(path).read()


# =======================
# REPORTS
# =======================

@pytest.mark.unit
class TestCsvReporter:
    """Tests for CsvReporter"""

    def test_initialize_writes_headers(self, tmp_path):
        reporter = CsvReporter(tmp_path / "errors.csv", tmp_path / "warnings.csv")
        reporter.initialize()
        assert read_rows(reporter.error_csv_path) == [ERROR_HEADER]
        assert read_rows(reporter.warning_csv_path) == [WARNING_HEADER]

    def test_rows_appended(self, tmp_path):
        reporter = CsvReporter(tmp_path / "errors.csv", tmp_path / "warnings.csv")
        reporter.initialize()
        reporter.log_error("p", "g", "f.json", "required property", error_path="/a", current_value="1")
        reporter.log_warning("p", "g", "f.json", "already on chain")

        error_row = read_rows(reporter.error_csv_path)[1]
        assert error_row[:6] == ["p", "g", "f.json", "/a", "required property", "1"]
        assert read_rows(reporter.warning_csv_path)[1][:4] == ["p", "g", "f.json", "already on chain"]
        assert (reporter.error_count, reporter.warning_count) == (1, 1)

    def test_header_written_without_initialize(self, tmp_path):
        reporter = CsvReporter(tmp_path / "errors.csv", tmp_path / "warnings.csv")
        reporter.log_warning("p", "g", "f", "r")
        assert read_rows(reporter.warning_csv_path)[0] == WARNING_HEADER


# =======================
# HASH OUTPUTS
# =======================

@pytest.mark.unit
class TestHashOutputs:
    """Tests for HashManifestWriter and ArtifactWriter"""

    def test_manifest_rows(self, tmp_path):
        doc = HashedDocument(
            property_cid=make_cid("p"),
            data_group_cid=make_cid("g"),
            data_cid=make_cid("d"),
            file_path="p/d.json",
            source_path="/in/county.json",
        )
        path = tmp_path / "out" / "manifest.csv"
        assert HashManifestWriter(path).write([doc]) == 1

        rows = read_rows(path)
        assert rows[0] == MANIFEST_HEADER
        assert rows[1][:4] == [doc.property_cid, doc.data_group_cid, doc.data_cid, "p/d.json"]

    def test_artifacts_in_directory(self, tmp_path):
        with ArtifactWriter(tmp_path / "out") as writer:
            relative = writer.write("prop", "cid.json", b"{}")
            writer.write("prop", "cid.json", b"{}")
        assert relative == "prop/cid.json"
        assert writer.written == 1
        assert (tmp_path / "out" / "prop" / "cid.json").read_bytes() == b"{}"

    def test_artifacts_in_zip(self, tmp_path):
        with ArtifactWriter(tmp_path / "out.zip") as writer:
            writer.write("prop", "a.json", b"{}")
            writer.write("prop", "b.png", b"\x89PNG")
        with zipfile.ZipFile(tmp_path / "out.zip") as zf:
            assert sorted(zf.namelist()) == ["prop/a.json", "prop/b.png"]
            assert zf.read("prop/b.png") == b"\x89PNG"
