import pytest

from jsoncsv.json2csv import MalformedJSONError, NoContentError, ReadError, UnknownColumnError, WriteError
from jsoncsv.models import SettingsModel
from jsoncsv.session import ConverterSession, options_from_settings


def test_new_session_is_ready(converter_session):
    state = converter_session.snapshot()
    assert state["status"] == "Ready"
    assert state["has_content"] is False
    assert state["progress"]["is_converting"] is False


def test_load_file_discovers_columns(converter_session, write_json, people):
    path = write_json(people)
    converter_session.load_file(str(path))

    assert converter_session.status == "JSON file loaded successfully"
    assert converter_session.json_path == str(path)
    assert converter_session.all_columns[:2] == ["name", "age"]
    assert converter_session.error_message is None


def test_load_missing_file_sets_error(converter_session, tmp_path):
    with pytest.raises(ReadError):
        converter_session.load_file(str(tmp_path / "missing.json"))
    assert converter_session.status == "Error loading file"
    assert converter_session.error_message.startswith("Failed to read JSON file:")


def test_convert_without_content(converter_session):
    with pytest.raises(NoContentError):
        converter_session.convert(SettingsModel())
    assert converter_session.error_message == "No JSON content loaded"
    assert converter_session.status == "No JSON content loaded"


def test_convert_uses_settings_and_selection(converter_session, write_json, people):
    converter_session.load_file(str(write_json(people)))
    converter_session.set_selected_columns(["age", "name"])

    converter_session.convert(SettingsModel(delimiter=";", max_preview_rows=10))

    assert converter_session.csv_content == "age;name\n36;Ada\n85;Grace\n;Linus\n"
    assert converter_session.preview_data[0] == ["age", "name"]
    assert converter_session.status == "Conversion completed successfully"
    assert converter_session.progress.progress == 1.0
    assert converter_session.progress.is_converting is False


def test_convert_malformed_json_reports_parse_error(converter_session):
    converter_session.load_text("broken.json", "{not json")
    assert converter_session.all_columns == []

    with pytest.raises(MalformedJSONError):
        converter_session.convert(SettingsModel())
    assert converter_session.error_message.startswith("JSON parsing error:")
    assert converter_session.csv_content is None


def test_selection_rejects_unknown_columns(converter_session, write_json, people):
    converter_session.load_file(str(write_json(people)))
    with pytest.raises(UnknownColumnError):
        converter_session.set_selected_columns(["name", "salary"])
    assert converter_session.selected_columns == []


def test_toggle_column(converter_session, write_json, people):
    converter_session.load_file(str(write_json(people)))

    assert converter_session.toggle_column("age", True) == ["age"]
    assert converter_session.toggle_column("name", True) == ["age", "name"]
    assert converter_session.toggle_column("age", True) == ["age", "name"]
    assert converter_session.toggle_column("age", False) == ["name"]


def test_loading_new_file_resets_output_and_prunes_selection(converter_session, write_json, people):
    converter_session.load_file(str(write_json(people)))
    converter_session.set_selected_columns(["name", "age"])
    converter_session.convert(SettingsModel())

    converter_session.load_file(str(write_json([{"name": "Ken", "lang": "B"}], "other.json")))

    assert converter_session.csv_content is None
    assert converter_session.preview_data is None
    assert converter_session.selected_columns == ["name"]


def test_preview_search(converter_session, write_json, people):
    converter_session.load_file(str(write_json(people)))
    converter_session.convert(SettingsModel())

    rows = converter_session.preview(search="grace")
    assert len(rows) == 2
    assert rows[1][0] == "Grace"
    assert len(converter_session.preview(limit=1)) == 2


def test_preview_before_conversion_is_empty(converter_session):
    assert converter_session.preview() == []


def test_save(converter_session, write_json, people, tmp_path):
    converter_session.load_file(str(write_json(people)))
    converter_session.convert(SettingsModel(include_headers=False))

    target = tmp_path / "out.csv"
    assert converter_session.save(str(target)) == str(target)
    assert target.read_text(encoding="utf-8").splitlines()[0] == "Ada,36,London,N1,,,"
    assert converter_session.status == "CSV file saved successfully"
    assert converter_session.csv_path == str(target)


def test_save_failure(converter_session, write_json, people, tmp_path):
    converter_session.load_file(str(write_json(people)))
    converter_session.convert(SettingsModel())

    with pytest.raises(WriteError):
        converter_session.save(str(tmp_path / "missing-dir" / "out.csv"))
    assert converter_session.status == "Error saving file"


def test_save_without_conversion(converter_session):
    with pytest.raises(NoContentError):
        converter_session.save("out.csv")
    assert converter_session.status == "Error saving file"
    assert converter_session.error_message == "No CSV content to save"


def test_options_from_settings_maps_tab():
    options = options_from_settings(SettingsModel(delimiter="\t", quote_fields=False), ["a"])
    assert options.delimiter.value == "\t"
    assert options.quote_fields is False
    assert options.columns == ["a"]
