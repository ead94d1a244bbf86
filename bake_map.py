# bake_map.py

"""
================================================================================
OFFLINE MAP BAKER SCRIPT
================================================================================
This script is a command-line tool for generating the layers of one or more
seeded maps ahead of time ("baking"). Every seed is generated in a worker
process and saved as a compressed NumPy archive next to the exact options and
settings that produced it, so a consumer can load it instead of generating.

Usage:
    python bake_map.py --config path/to/your/config.json
    python bake_map.py --config config.json --seeds alpha beta --pipeline simulation
================================================================================
"""
import argparse
import collections
import json
import logging
import logging.config
import multiprocessing
import os
import re
import sys
import time

from tqdm import tqdm

from map_generator import BIOME_NAMES, GenerationOptions
from map_generator.options import PIPELINES, PIPELINE_PREVIEW, cache_key
from map_generator.preview.worker import run_pipeline

LOGGING_CONFIG_PATH = "logging_config.json"
DEFAULT_OUTPUT_DIR = "baked_maps"

# --- Global variables for worker processes ---
worker_settings = {}
worker_pipeline = PIPELINE_PREVIEW
worker_output_dir = ""


def setup_logging(log_config_path: str = LOGGING_CONFIG_PATH) -> logging.Logger:
    """Configures logging from a JSON dictConfig file, or falls back to basicConfig."""
    if os.path.isfile(log_config_path):
        with open(log_config_path, 'rt') as f:
            log_config = json.load(f)
        log_file = log_config.get('handlers', {}).get('file', {}).get('filename')
        if log_file:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        logging.config.dictConfig(log_config)
    else:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(levelname)s - %(message)s',
            stream=sys.stdout
        )
    return logging.getLogger("Baker")


def seed_directory_name(seed: str) -> str:
    """Turns a seed into a safe directory name."""
    slug = re.sub(r"[^A-Za-z0-9_-]+", "_", seed).strip("_")
    return slug or "seed"


def init_worker(settings: dict, pipeline: str, output_dir: str):
    """Initializes the global state for each worker process."""
    global worker_settings, worker_pipeline, worker_output_dir
    worker_settings = settings
    worker_pipeline = pipeline
    worker_output_dir = output_dir


def bake_seed(options_data: dict) -> dict:
    """
    Generates and SAVES the layers for one set of options. Returns only
    minimal metadata to the main process.
    """
    worker_logger = logging.getLogger(f"Worker-{os.getpid()}")
    options = GenerationOptions.from_dict(options_data)
    layers = run_pipeline(worker_pipeline, options, worker_settings, worker_logger)

    map_dir = os.path.join(worker_output_dir, seed_directory_name(options.seed))
    os.makedirs(map_dir, exist_ok=True)
    layers.save_npz(os.path.join(map_dir, "layers.npz"))

    with open(os.path.join(map_dir, "generation_config.json"), 'w') as f:
        json.dump({
            'pipeline': worker_pipeline,
            'cache_key': cache_key(options, worker_pipeline),
            'options': options.to_dict(),
            'grid': {'cells_x': layers.cells_x, 'cells_y': layers.cells_y},
            'map_generation_parameters': worker_settings,
        }, f, indent=4)

    return {
        'seed': options.seed,
        'path': map_dir,
        'biome_counts': {int(kind): count for kind, count in layers.biome_counts().items()},
        'river_cells': int(layers.river.sum()),
        'land_cells': int(layers.is_land.sum()),
    }


def bake_maps(config_path: str, seeds: list = None, pipeline: str = None, output_dir: str = None) -> int:
    """
    Loads a configuration and bakes every requested seed. Returns a process
    exit code.
    """
    # 1. --- Setup Logging ---
    logger = setup_logging()

    # 2. --- Load Configuration ---
    logger.info(f"Loading configuration from: {config_path}")
    try:
        with open(config_path, 'r') as f:
            config = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.critical(f"Failed to load or parse config file: {e}")
        return 1

    settings = config.get('map_generation_parameters', {})
    base_options = config.get('options', {})
    pipeline = pipeline or config.get('pipeline', PIPELINE_PREVIEW)
    if pipeline not in PIPELINES:
        logger.critical(f"Unknown pipeline '{pipeline}'. Expected one of: {', '.join(PIPELINES)}")
        return 1
    output_dir = output_dir or config.get('output_dir', DEFAULT_OUTPUT_DIR)

    seeds = seeds or config.get('seeds') or [base_options.get('seed')]
    tasks = [
        GenerationOptions.from_dict({**base_options, 'seed': seed}).to_dict() for seed in seeds
    ]
    os.makedirs(output_dir, exist_ok=True)

    # 3. --- Main Baking Loop (Parallelized) ---
    num_workers = max(1, min(len(tasks), multiprocessing.cpu_count() - 1))
    logger.info(f"Baking {len(tasks)} map(s) with the '{pipeline}' pipeline using {num_workers} worker process(es).")
    start_time = time.perf_counter()

    biome_totals = collections.Counter()
    results = []
    with multiprocessing.Pool(processes=num_workers, initializer=init_worker,
                              initargs=(settings, pipeline, output_dir)) as pool:
        for result in tqdm(pool.imap_unordered(bake_seed, tasks), total=len(tasks), desc="Baking Maps"):
            results.append(result)
            biome_totals.update(result['biome_counts'])

    # --- Finalization ---
    end_time = time.perf_counter()
    logger.info(f"Baking complete! Total time: {end_time - start_time:.2f} seconds.")
    for result in sorted(results, key=lambda r: r['seed']):
        logger.info(
            f"  - '{result['seed']}': {result['land_cells']} land cells, "
            f"{result['river_cells']} river cells -> {result['path']}"
        )
    logger.info("--- Biome Coverage ---")
    total_cells = sum(biome_totals.values())
    for kind, count in biome_totals.most_common():
        logger.info(f"  - {BIOME_NAMES[kind]}: {count} cells ({100.0 * count / total_cells:.1f}%)")
    return 0


# --- Command-Line Interface ---
if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Offline baker for seeded map layers.")
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to the JSON configuration file for the maps to be baked."
    )
    parser.add_argument("--seeds", nargs="+", help="Seeds to bake. Overrides the config file.")
    parser.add_argument("--pipeline", choices=PIPELINES, help="Generation pipeline to run.")
    parser.add_argument("--output", type=str, help="Output directory for baked maps.")
    args = parser.parse_args()

    sys.exit(bake_maps(args.config, seeds=args.seeds, pipeline=args.pipeline, output_dir=args.output))
