"""Unit tests for sequence definition loading."""

import pytest

from bizdocs.config.sequence_loader import (
    SequenceDefinition,
    get_default_sequences_path,
    get_sequence,
    load_sequences,
)


def _write(tmp_path, text):
    path = tmp_path / "sequences.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestBundledSequences:
    """Test the sequence file shipped with the package."""

    def test_all_sequences_present(self):
        sequences = load_sequences(get_default_sequences_path())

        assert set(sequences) == {
            "quote", "sale", "purchase_order", "inventory_order", "invoice",
            "delivery_challan", "project_invoice", "demo_challan", "demo_application",
        }

    def test_inventory_order_definition(self):
        definition = get_sequence("inventory_order", load_sequences(get_default_sequences_path()))

        assert definition.counter_id == "inventoryOrderNumberGenerator"
        assert definition.prefix == "ORD"
        assert definition.pad_width == 3
        assert definition.collection == "inventory_orders"
        assert definition.separator == "-"

    def test_two_digit_and_unseparated_sequences(self):
        sequences = load_sequences(get_default_sequences_path())

        assert sequences["quote"].pad_width == 2
        assert sequences["sale"].prefix == "IMI"
        assert sequences["sale"].collection == "sales_invoice"
        assert sequences["demo_application"].separator == ""

    def test_unknown_sequence(self):
        with pytest.raises(KeyError, match="Unknown sequence"):
            get_sequence("receipt", load_sequences(get_default_sequences_path()))


class TestLoadSequences:
    """Test load_sequences() error handling."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_sequences(tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path):
        with pytest.raises(ValueError, match="empty"):
            load_sequences(_write(tmp_path, ""))

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_sequences(_write(tmp_path, "sequences: [unclosed"))

    def test_missing_sequences_list(self, tmp_path):
        with pytest.raises(ValueError, match="'sequences' list"):
            load_sequences(_write(tmp_path, "other: 1\n"))

    def test_missing_keys(self, tmp_path):
        with pytest.raises(ValueError, match="missing keys"):
            load_sequences(_write(tmp_path, "sequences:\n  - name: quote\n    prefix: QT\n"))

    def test_duplicate_names(self, tmp_path):
        row = "  - {name: quote, counter_id: c, prefix: QT, pad_width: 2, collection: quotes}\n"
        with pytest.raises(ValueError, match="Duplicate"):
            load_sequences(_write(tmp_path, "sequences:\n" + row + row))

    def test_env_override(self, tmp_path, monkeypatch):
        path = _write(
            tmp_path,
            "sequences:\n  - {name: receipt, counter_id: receiptGen, prefix: RC, pad_width: 4, collection: receipts}\n",
        )
        monkeypatch.setenv("BIZDOCS_SEQUENCES_FILE", str(path))

        sequences = load_sequences()

        assert list(sequences) == ["receipt"]
        assert sequences["receipt"].pad_width == 4


class TestSequenceDefinition:
    """Test SequenceDefinition validation."""

    def test_pad_width_must_be_positive(self):
        with pytest.raises(ValueError, match="pad_width"):
            SequenceDefinition(name="x", counter_id="c", prefix="X", pad_width=0, collection="xs")

    def test_counter_id_required(self):
        with pytest.raises(ValueError, match="counter_id"):
            SequenceDefinition(name="x", counter_id="", prefix="X", pad_width=3, collection="xs")
