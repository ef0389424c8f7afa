"""
Tests for export formats and export destination settings.
"""

import zipfile
from pathlib import Path

import pytest

from beatmap_exporter.core.config import ExportConfig
from beatmap_exporter.domain.export import ExporterConfiguration, ExportFormat


class TestExportFormat:
    """Test format cycling and lookup."""

    def test_next_cycles(self):
        assert ExportFormat.BEATMAP.next() is ExportFormat.AUDIO
        assert ExportFormat.AUDIO.next() is ExportFormat.BACKGROUND
        assert ExportFormat.BACKGROUND.next() is ExportFormat.COLLECTION
        assert ExportFormat.COLLECTION.next() is ExportFormat.BEATMAP

    def test_from_name(self):
        assert ExportFormat.from_name(" Audio ") is ExportFormat.AUDIO

    def test_from_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown export format 'video'"):
            ExportFormat.from_name("video")

    def test_every_format_is_described(self):
        for export_format in ExportFormat:
            assert export_format.unit_name
            assert export_format.descriptor


class TestExporterConfiguration:
    """Test export paths and compression."""

    def test_default_path(self):
        configuration = ExporterConfiguration()
        assert configuration.export_path == Path("lazerexport")
        assert configuration.is_default_path

    @pytest.mark.parametrize(
        "export_format,subfolder",
        [
            (ExportFormat.BEATMAP, None),
            (ExportFormat.AUDIO, "mp3"),
            (ExportFormat.BACKGROUND, "bg"),
            (ExportFormat.COLLECTION, None),
        ],
    )
    def test_subfolders(self, tmp_path, export_format, subfolder):
        configuration = ExporterConfiguration(base_path=str(tmp_path), export_format=export_format)
        expected = tmp_path / subfolder if subfolder else tmp_path
        assert configuration.export_path == expected
        assert not configuration.is_default_path

    def test_compression(self):
        assert ExporterConfiguration().compression == zipfile.ZIP_STORED
        assert ExporterConfiguration(compression_enabled=True).compression == zipfile.ZIP_DEFLATED

    def test_setup_export_creates_directory(self, tmp_path):
        configuration = ExporterConfiguration(base_path=str(tmp_path / "out"), export_format=ExportFormat.AUDIO)
        path = configuration.setup_export()
        assert path.is_dir()
        assert path == tmp_path / "out" / "mp3"

    def test_from_config(self):
        export_config = ExportConfig(export_path="exports", export_format="background", compression_enabled=True)
        configuration = ExporterConfiguration.from_config(export_config)
        assert configuration.export_format is ExportFormat.BACKGROUND
        assert configuration.compression_enabled
        assert configuration.export_path == Path("exports") / "bg"
