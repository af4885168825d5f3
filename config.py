"""
Corpus Relations - Configuration & Constants
=============================================
Engine defaults and thresholds for tokenization, tf-idf, pairwise
statistics and graph construction.
Overrides are loaded from a config.properties file or the environment.
"""

import os
import logging

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

logger = logging.getLogger("corel.config")


def load_properties(filepath: str) -> dict:
    """Load configuration from .properties file."""
    props = {}
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                # Skip comments and empty lines
                if not line or line.startswith('#'):
                    continue
                if '=' in line:
                    key, value = line.split('=', 1)
                    props[key.strip()] = value.strip()
        logger.info("Loaded %d properties from %s", len(props), filepath)
    except FileNotFoundError:
        logger.debug("Properties file not found: %s, using default values", filepath)
    except OSError as e:
        logger.error("Failed to read properties file %s: %s", filepath, e)
    return props


# Load properties from config.properties file
_props = load_properties(os.path.join(BASE_DIR, 'config.properties'))


def _get_config(key: str, default: str = "") -> str:
    """Get configuration value from environment variable or properties file.

    Priority: Environment Variable > config.properties > default
    """
    return os.environ.get(key, _props.get(key, default))


def _get_bool(key: str, default: str) -> bool:
    return _get_config(key, default).lower() in ("true", "1", "yes")


class Config:
    # ──────────────────────────── Application ────────────────────────────
    APP_NAME = "Corpus Relations"
    APP_VERSION = "1.0.0"
    SECRET_KEY = _get_config("SECRET_KEY", "corel-change-in-production")
    DEBUG = _get_bool("DEBUG", "False")
    LOG_LEVEL = _get_config("LOG_LEVEL", "DEBUG")

    # ──────────────────────────── Tokenizer ──────────────────────────────
    DEFAULT_NGRAM_SIZE = int(_get_config("DEFAULT_NGRAM_SIZE", "1"))
    DEFAULT_SECTION_SIZE = int(_get_config("DEFAULT_SECTION_SIZE", "10"))   # lines per section

    # ──────────────────────────── TF-IDF ─────────────────────────────────
    # "skip" drops empty documents (logged), "raise" fails fast
    EMPTY_DOCUMENT_POLICY = _get_config("EMPTY_DOCUMENT_POLICY", "skip")
    EMPTY_DOCUMENT_POLICIES = ("skip", "raise")
    DEFAULT_TOP_K = int(_get_config("DEFAULT_TOP_K", "15"))

    # ──────────────────────────── Pairwise Statistics ────────────────────
    MIN_GROUP_FREQUENCY = int(_get_config("MIN_GROUP_FREQUENCY", "1"))
    # Distinct-item ceiling for the pairwise step; 0 disables the guard
    MAX_PAIRWISE_ITEMS = int(_get_config("MAX_PAIRWISE_ITEMS", "20000"))
    PARALLEL_MIN_GROUPS = int(_get_config("PARALLEL_MIN_GROUPS", "2000"))
    PARALLEL_WORKERS = int(_get_config("PARALLEL_WORKERS", "0"))            # 0 = CPU count

    # ──────────────────────────── Relationship Graph ─────────────────────
    GRAPH_MIN_WEIGHT = float(_get_config("GRAPH_MIN_WEIGHT", "0"))
    GRAPH_COMPARISON = _get_config("GRAPH_COMPARISON", "ge")
    GRAPH_COMPARISONS = ("ge", "gt")
    EXPORT_FORMATS = ("node_link", "cytoscape", "adjacency_matrix")

    # ──────────────────────────── Topic Model ────────────────────────────
    TOPIC_MODEL_MAX_ITER = int(_get_config("TOPIC_MODEL_MAX_ITER", "30"))
    DEFAULT_RANDOM_STATE = 42

    @classmethod
    def max_pairwise_items(cls) -> int | None:
        """The pairwise capacity limit, or None when the guard is disabled."""
        return cls.MAX_PAIRWISE_ITEMS if cls.MAX_PAIRWISE_ITEMS > 0 else None
