# -*- coding: utf-8 -*-
"""
Chunking pipeline CLI

Chunks a JSONL collection of documents (one {"text", "name"?} record per line)
or a single plain-text file, writing chunks.jsonl and chunking_report.json to
the output directory. Every chunking option can be overridden from the
command line; defaults come from CHUNKING_CONFIG.

Examples:
    # Chunk a document collection with default options
    python scripts/run_chunking.py --input data/raw/documents.jsonl

    # Token-based sizes, larger chunks, no merge optimisation
    python scripts/run_chunking.py -i notes.txt --size-unit tokens --max-chunk-size 256 --no-combine

    # Quick look at 10 sampled documents with per-pass debug logs
    python scripts/run_chunking.py -i docs.jsonl --sample 10 --seed 42 --log-level DEBUG

"""
# Standard library
import argparse
import logging
import sys
from pathlib import Path

# Project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Config
from config.chunking_config import CHUNKING_CONFIG, EMBEDDING_CONFIG, PROCESSING_CONFIG

# Local
from chunkmerge.processing.chunks.chunk_processor import ChunkProcessor
from chunkmerge.processing.chunks.chunking_options import ChunkingOptions
from chunkmerge.utils.embedder import BGEEmbedder
from chunkmerge.utils.io import save_jsonl
from chunkmerge.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Split documents into semantically merged chunks',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Defaults loaded from CHUNKING_CONFIG:
    max-chunk-size:            {CHUNKING_CONFIG['max_chunk_size']} {CHUNKING_CONFIG['size_unit']}
    similarity-threshold:      {CHUNKING_CONFIG['similarity_threshold']}
    combine-threshold:         {CHUNKING_CONFIG['combine_chunks_similarity_threshold']}
    max-uncapped-passes:       {CHUNKING_CONFIG['max_uncapped_passes']}
    max-merges-per-pass:       {CHUNKING_CONFIG['max_merges_per_pass']}
    max-merges-percentage:     {CHUNKING_CONFIG['max_merges_per_pass_percentage']}
    min-merges-per-pass:       {CHUNKING_CONFIG['min_merges_per_pass']}
        """
    )

    parser.add_argument('-i', '--input', type=Path, required=True,
                        help='Input .jsonl document collection or plain-text file')
    parser.add_argument('-o', '--output-dir', type=Path, default=Path(PROCESSING_CONFIG['output_dir']),
                        help=f"Output directory (default: {PROCESSING_CONFIG['output_dir']})")

    parser.add_argument('--max-chunk-size', type=int, default=CHUNKING_CONFIG['max_chunk_size'])
    parser.add_argument('--size-unit', choices=['characters', 'tokens'], default=CHUNKING_CONFIG['size_unit'])
    parser.add_argument('--similarity-threshold', type=float, default=CHUNKING_CONFIG['similarity_threshold'])
    parser.add_argument('--dynamic-lower-bound', type=float,
                        default=CHUNKING_CONFIG['dynamic_threshold_lower_bound'])
    parser.add_argument('--dynamic-upper-bound', type=float,
                        default=CHUNKING_CONFIG['dynamic_threshold_upper_bound'])
    parser.add_argument('--lookahead', type=int, default=CHUNKING_CONFIG['num_similarity_sentences_lookahead'],
                        help='Following sentences compared per boundary')

    parser.add_argument('--no-combine', action='store_true', help='Skip the merge optimizer')
    parser.add_argument('--size-only', action='store_true',
                        help='Segment by size only (no sentence similarity boundaries)')
    parser.add_argument('--combine-threshold', type=float,
                        default=CHUNKING_CONFIG['combine_chunks_similarity_threshold'])
    parser.add_argument('--max-uncapped-passes', type=int, default=CHUNKING_CONFIG['max_uncapped_passes'])
    parser.add_argument('--max-merges-per-pass', type=int, default=CHUNKING_CONFIG['max_merges_per_pass'])
    parser.add_argument('--max-merges-percentage', type=float,
                        default=CHUNKING_CONFIG['max_merges_per_pass_percentage'])
    parser.add_argument('--min-merges-per-pass', type=int, default=CHUNKING_CONFIG['min_merges_per_pass'],
                        help='Soft floor on merges per pass (0 disables)')

    parser.add_argument('--no-embeddings', action='store_true', help='Do not write embeddings')
    parser.add_argument('--chunk-prefix', type=str, default=CHUNKING_CONFIG['chunk_prefix'])
    parser.add_argument('--exclude-prefix', action='store_true',
                        help='Embed with the prefix but write texts without it')

    parser.add_argument('--model', type=str, default=EMBEDDING_CONFIG['model_name'])
    parser.add_argument('--device', type=str, default=EMBEDDING_CONFIG['device'])
    parser.add_argument('--max-concurrent', type=int, default=PROCESSING_CONFIG['max_concurrent_documents'])
    parser.add_argument('--sample', type=int, default=0, help='Number of documents to sample (0 = all)')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for reproducible sampling')

    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], default='INFO')
    parser.add_argument('--log-file', type=str, default=None)

    return parser.parse_args(argv)


def build_options(args) -> ChunkingOptions:
    """Translate parsed arguments into validated ChunkingOptions."""
    return ChunkingOptions(
        max_chunk_size=args.max_chunk_size,
        size_unit=args.size_unit,
        similarity_threshold=args.similarity_threshold,
        dynamic_threshold_lower_bound=args.dynamic_lower_bound,
        dynamic_threshold_upper_bound=args.dynamic_upper_bound,
        num_similarity_sentences_lookahead=args.lookahead,
        combine_chunks=not args.no_combine,
        combine_chunks_similarity_threshold=args.combine_threshold,
        max_uncapped_passes=args.max_uncapped_passes,
        max_merges_per_pass=args.max_merges_per_pass,
        max_merges_per_pass_percentage=args.max_merges_percentage,
        min_merges_per_pass=args.min_merges_per_pass or None,
        return_embedding=not args.no_embeddings,
        chunk_prefix=args.chunk_prefix,
        exclude_chunk_prefix_in_results=args.exclude_prefix,
    )


def resolve_input(input_path: Path, output_dir: Path) -> Path:
    """Plain-text input is wrapped into a one-record JSONL next to the outputs."""
    if input_path.suffix == '.jsonl':
        return input_path
    text = input_path.read_text(encoding='utf-8')
    wrapped = output_dir / f"{input_path.stem}.documents.jsonl"
    save_jsonl([{'text': text, 'name': input_path.name}], wrapped)
    return wrapped


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)

    if not args.input.exists():
        logger.error(f"Input not found: {args.input}")
        return 1

    try:
        options = build_options(args)
    except ValueError as e:
        logger.error(str(e))
        return 2

    logger.info("=" * 60)
    logger.info("CHUNKING PIPELINE")
    logger.info("=" * 60)
    logger.info(f"Input: {args.input}")
    logger.info(f"Output: {args.output_dir}")
    logger.info(f"Max chunk size: {options.max_chunk_size} {options.size_unit}")
    logger.info(f"Combine chunks: {options.combine_chunks}")
    logger.info(f"Sample: {args.sample if args.sample > 0 else 'all'}")
    logger.info("=" * 60)

    embedder = BGEEmbedder(model_name=args.model, device=args.device)
    processor = ChunkProcessor(
        embedder,
        options,
        max_concurrent=args.max_concurrent,
        semantic=not args.size_only,
    )

    input_path = resolve_input(args.input, args.output_dir)
    report = processor.process_file(input_path, args.output_dir, sample=args.sample, seed=args.seed)

    logger.info(
        f"Done: {report.total_chunks} chunks from {report.processed_documents} documents, "
        f"{len(report.failed)} failed"
    )
    return 0 if not report.failed else 3


if __name__ == "__main__":
    sys.exit(main())
