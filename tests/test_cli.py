import io
import json
import pathlib

import pypdf
import pytest

import receipt_sheet_converter.cli

import conftest


cli = receipt_sheet_converter.cli


#============================================
def _write_inputs(tmp_path: pathlib.Path) -> list[str]:
	"""
	Write a PDF, a PNG and a workbook into a temp folder.

	Returns:
		Paths in layout order.
	"""
	pdf_path = tmp_path / "invoice.pdf"
	pdf_path.write_bytes(conftest.build_pdf_bytes([(400.0, 200.0)]))
	png_path = tmp_path / "receipt.png"
	png_path.write_bytes(conftest.build_image_bytes(300, 600))
	xlsx_path = tmp_path / "expenses.xlsx"
	xlsx_path.write_bytes(conftest.build_xlsx_bytes([["Item", "Amount"], ["Taxi", 23.5]]))
	return [str(pdf_path), str(png_path), str(xlsx_path)]


#============================================
def test_parse_args_defaults() -> None:
	args = cli.parse_args(["a.pdf", "-o", "out.pdf"])
	assert args.inputs == ["a.pdf"]
	assert args.preset == "small"
	assert args.sheet == "a4"
	assert args.width_cm is None
	assert args.quiet is False


#============================================
def test_custom_size_overrides_preset() -> None:
	args = cli.parse_args(["a.pdf", "-o", "out.pdf", "-s", "large", "-W", "9", "-H", "12.5"])
	job_config = cli.build_job_config(args)
	assert job_config.use_custom_size is True
	assert (job_config.custom_width_cm, job_config.custom_height_cm) == (9.0, 12.5)


#============================================
def test_letter_sheet_layout() -> None:
	args = cli.parse_args(["a.pdf", "-o", "out.pdf", "--sheet", "letter"])
	layout = cli.build_layout_config(args)
	assert (layout.sheet_width, layout.sheet_height) == (612.0, 792.0)


#============================================
def test_run_pipeline_writes_pdf_and_manifest(tmp_path: pathlib.Path, capsys) -> None:
	"""
	A CLI run writes the sheet PDF and the manifest.
	"""
	inputs = _write_inputs(tmp_path)
	output_path = tmp_path / "sheets.pdf"
	manifest_path = tmp_path / "sheets.json"
	args = cli.parse_args(
		inputs + ["-o", str(output_path), "-m", str(manifest_path), "-s", "medium"]
	)
	assert cli.run_pipeline(args) == 0
	reader = pypdf.PdfReader(io.BytesIO(output_path.read_bytes()))
	assert len(reader.pages) >= 1
	manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
	assert manifest["items"] == 3
	assert manifest["sheets"] == len(reader.pages)
	assert [entry["source"] for entry in manifest["placements"]] == [
		"invoice.pdf",
		"receipt.png",
		"expenses.xlsx",
	]
	output = capsys.readouterr().out
	assert "Items placed: 3" in output
	assert "100%" in output


#============================================
def test_run_pipeline_reports_errors(tmp_path: pathlib.Path, capsys) -> None:
	"""
	A failing job prints the message and suggestion and writes nothing.
	"""
	inputs = _write_inputs(tmp_path)
	empty_path = tmp_path / "empty.png"
	empty_path.write_bytes(b"")
	output_path = tmp_path / "sheets.pdf"
	args = cli.parse_args(inputs + [str(empty_path), "-o", str(output_path), "-q"])
	assert cli.run_pipeline(args) == 1
	assert not output_path.exists()
	output = capsys.readouterr().out
	assert "Error: The file is empty or has no usable content" in output
	assert "File: empty.png" in output
	assert "Suggestion:" in output


#============================================
def test_run_pipeline_reports_clamped_size(tmp_path: pathlib.Path, capsys) -> None:
	png_path = tmp_path / "banner.png"
	png_path.write_bytes(conftest.build_image_bytes(800, 400))
	output_path = tmp_path / "sheets.pdf"
	args = cli.parse_args([str(png_path), "-o", str(output_path), "-s", "extra-large", "-q"])
	assert cli.run_pipeline(args) == 0
	output = capsys.readouterr().out
	assert "Target size clamped to the printable area: 19.2x11.0cm" in output

#============================================
def test_missing_input_file(tmp_path: pathlib.Path) -> None:
	args = cli.parse_args([str(tmp_path / "nope.pdf"), "-o", str(tmp_path / "out.pdf")])
	with pytest.raises(FileNotFoundError):
		cli.run_pipeline(args)
