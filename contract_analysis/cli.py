"""Typer CLI entrypoint for real estate contract analysis."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import typer
from tqdm import tqdm

from .analyzer import ContractAnalyzer, analyze_response
from .config import AnalysisConfig, DEFAULT_MAX_CONTRACT_CHARS, ModelConfig
from .llm_client import LLMClient
from .prompts import build_analysis_prompt
from .schema import AnalysisDocument
from .triggers import collect_global_triggers

logging.basicConfig(level=logging.INFO)

app = typer.Typer(help="CLI for LLM-based real estate contract analysis")


def _document_payload(document: AnalysisDocument) -> Dict:
    payload = document.to_json_dict()
    payload["globalTriggers"] = collect_global_triggers(document)
    return payload


def _write_json(path: Path, document: AnalysisDocument) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(_document_payload(document), indent=2, ensure_ascii=False))


def _build_analyzer(
    model_name: Optional[str],
    max_tokens: int,
    temperature: float,
    timeout_seconds: float,
    json_mode: bool,
    max_contract_chars: int,
) -> ContractAnalyzer:
    model_config = ModelConfig.from_env(
        model_name=model_name,
        max_tokens=max_tokens,
        temperature=temperature,
        timeout_seconds=timeout_seconds,
        json_mode=json_mode,
    )
    llm = LLMClient(config=model_config)
    return ContractAnalyzer(llm, AnalysisConfig(max_contract_chars=max_contract_chars))


@app.command("analyze-file")
def analyze_file(
    contract_path: Path = typer.Option(..., help="Path to the contract .txt file."),
    output_json: Path = typer.Option(..., help="Destination JSON path."),
    model_name: Optional[str] = typer.Option(None, help="Model to use (default: CONTRACT_ANALYSIS_MODEL)."),
    max_tokens: int = typer.Option(8000, help="Completion max_tokens."),
    temperature: float = typer.Option(0.1, help="Sampling temperature."),
    timeout_seconds: float = typer.Option(120.0, help="Model request timeout."),
    json_mode: bool = typer.Option(False, help="Request response_format=json_object."),
    max_contract_chars: int = typer.Option(DEFAULT_MAX_CONTRACT_CHARS, help="Truncate contract text beyond this."),
) -> None:
    """Analyze a single contract and write the document as JSON."""

    analyzer = _build_analyzer(model_name, max_tokens, temperature, timeout_seconds, json_mode, max_contract_chars)
    contract_text = contract_path.read_text(encoding="utf-8", errors="replace")
    document = asyncio.run(analyzer.analyze(contract_text))
    _write_json(output_json, document)
    meta = document.analysis_meta
    typer.echo(
        f"Wrote analysis to {output_json} (source={meta.source}, confidence={meta.confidence:.2f}, "
        f"warnings={len(meta.warnings)})"
    )


async def _analyze_many(analyzer: ContractAnalyzer, paths: List[Path], output_dir: Path, show_progress: bool) -> List[Dict]:
    rows: List[Dict] = []
    progress = tqdm(total=len(paths), desc="Analyzing contracts", disable=not show_progress)
    for path in paths:
        document = await analyzer.analyze(path.read_text(encoding="utf-8", errors="replace"))
        _write_json(output_dir / f"{path.stem}.json", document)
        meta = document.analysis_meta
        rows.append(
            {
                "file": path.name,
                "address": document.property_info.address,
                "purchase_price": document.property_info.purchase_price,
                "buyer": document.parties.buyer.name,
                "seller": document.parties.seller.name,
                "opening_of_escrow": document.escrow.opening_date,
                "source": meta.source,
                "confidence": meta.confidence,
                "warnings_json": json.dumps(meta.warnings, ensure_ascii=False),
            }
        )
        progress.update(1)
    progress.close()
    return rows


@app.command("analyze-dir")
def analyze_dir(
    input_dir: Path = typer.Option(..., help="Directory containing contract .txt files."),
    output_dir: Path = typer.Option(..., help="Directory for per-contract JSON and summary.csv."),
    model_name: Optional[str] = typer.Option(None, help="Model to use (default: CONTRACT_ANALYSIS_MODEL)."),
    max_tokens: int = typer.Option(8000, help="Completion max_tokens."),
    temperature: float = typer.Option(0.1, help="Sampling temperature."),
    timeout_seconds: float = typer.Option(120.0, help="Model request timeout."),
    json_mode: bool = typer.Option(False, help="Request response_format=json_object."),
    max_contract_chars: int = typer.Option(DEFAULT_MAX_CONTRACT_CHARS, help="Truncate contract text beyond this."),
    disable_progress: bool = typer.Option(False, help="Disable tqdm progress bars."),
) -> None:
    """Analyze every .txt contract in a directory and write a summary CSV."""

    paths = sorted(input_dir.glob("*.txt"))
    if not paths:
        typer.echo(f"No .txt contracts found in {input_dir}")
        raise typer.Exit(code=1)
    analyzer = _build_analyzer(model_name, max_tokens, temperature, timeout_seconds, json_mode, max_contract_chars)
    rows = asyncio.run(_analyze_many(analyzer, paths, output_dir, show_progress=not disable_progress))
    output_dir.mkdir(parents=True, exist_ok=True)
    summary_csv = output_dir / "summary.csv"
    pd.DataFrame(rows).to_csv(summary_csv, index=False)
    typer.echo(f"Wrote {len(rows)} analyses and {summary_csv}")


@app.command("parse-response")
def parse_response(
    response_path: Path = typer.Option(..., help="Saved raw model response text."),
    output_json: Path = typer.Option(..., help="Destination JSON path."),
    contract_path: Optional[Path] = typer.Option(None, help="Contract text, used for fallback extraction."),
) -> None:
    """Run the repair/merge/validate pipeline on a saved model response."""

    response_text = response_path.read_text(encoding="utf-8", errors="replace")
    contract_text = contract_path.read_text(encoding="utf-8", errors="replace") if contract_path else ""
    document = analyze_response(response_text, contract_text)
    _write_json(output_json, document)
    for warning in document.analysis_meta.warnings:
        typer.echo(f"warning: {warning}")
    typer.echo(f"Wrote analysis to {output_json} (source={document.analysis_meta.source})")


@app.command("show-prompt")
def show_prompt(
    contract_path: Path = typer.Option(..., help="Path to the contract .txt file."),
    max_contract_chars: int = typer.Option(DEFAULT_MAX_CONTRACT_CHARS, help="Truncate contract text beyond this."),
) -> None:
    """Print the exact prompt that would be sent for a contract."""

    prompt = build_analysis_prompt(contract_path.read_text(encoding="utf-8", errors="replace"), max_chars=max_contract_chars)
    typer.echo(prompt.text)
    typer.echo(f"\n--- prompt {prompt.version}, {len(prompt.text)} chars, truncated={prompt.truncated} ---", err=True)


if __name__ == "__main__":  # pragma: no cover
    app()
