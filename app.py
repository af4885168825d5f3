"""
Corpus Relations – Flask Application
=====================================
REST API over the text engine:
tokenize → count → tf-idf → pairwise statistics → relationship graph,
plus an LDA topic-model adapter. Every request is stateless; the corpus
travels in the request body.
"""

import os
import uuid

import numpy as np
import pandas as pd
from flask import Flask, request, jsonify, session
from flask.json.provider import DefaultJSONProvider
from flask_cors import CORS

from config import Config
from logging_config import setup_logging, get_logger, get_recent_logs, get_pipeline_log, task_event

# Initialise logging BEFORE anything else
setup_logging(Config.LOG_LEVEL)

from text_engine.errors import CapacityExceeded, EmptyDocument, InvalidArgument
from text_engine.frequency import FrequencyTable
from text_engine.graph import GraphBuilder
from text_engine.pairwise import PairwiseEngine
from text_engine.records import as_memberships
from text_engine.tfidf import TfIdfScorer
from text_engine.tokenizer import DEFAULT_STOPWORDS, Tokenizer
from text_engine.topics import TopicModeler

logger = get_logger("app")


# ────────────────────────────────────────────────────────────────────
#  Custom JSON Provider for Pandas/Numpy Types
# ────────────────────────────────────────────────────────────────────
class PandasJSONProvider(DefaultJSONProvider):
    """Custom JSON provider that handles pandas and numpy types."""

    def default(self, obj):
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if hasattr(obj, "item"):
            # numpy scalar → native Python type
            val = obj.item()
            if isinstance(val, float) and (np.isnan(val) or np.isinf(val)):
                return None
            return val
        if isinstance(obj, (pd.Timestamp, np.datetime64)):
            return str(obj)
        return super().default(obj)


# ────────────────────────────────────────────────────────────────────
#  App Init
# ────────────────────────────────────────────────────────────────────
app = Flask(__name__)
app.config.from_object(Config)
app.secret_key = Config.SECRET_KEY
app.json = PandasJSONProvider(app)
CORS(app)

logger.info("Flask app initialised: %s v%s (debug=%s)",
            Config.APP_NAME, Config.APP_VERSION, Config.DEBUG)


def _sid() -> str:
    """Get or create session id."""
    if "sid" not in session:
        session["sid"] = str(uuid.uuid4())[:12]
    return session["sid"]


def _ok(data=None, message="success"):
    return jsonify({"status": "ok", "message": message, "data": data})


def _err(message, code=400):
    logger.warning("API error response [%d]: %s", code, message)
    return jsonify({"status": "error", "message": message}), code


# ────────────────────────────────────────────────────────────────────
#  Request parsing
# ────────────────────────────────────────────────────────────────────
def _body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidArgument("Request body must be a JSON object")
    return body


def _int(body: dict, key: str, default):
    value = body.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidArgument(f"'{key}' must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"'{key}' must be an integer, got {value!r}")


def _float(body: dict, key: str, default):
    value = body.get(key, default)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"'{key}' must be a number, got {value!r}")


def _stopwords(body: dict):
    """``true`` → default English list, list → custom, absent/false → none."""
    value = body.get("stopwords", False)
    if value is True:
        return DEFAULT_STOPWORDS
    if not value:
        return None
    if isinstance(value, list) and all(isinstance(w, str) for w in value):
        return value
    raise InvalidArgument("'stopwords' must be a boolean or a list of strings")


def _documents(body: dict):
    docs = body.get("documents")
    if not isinstance(docs, list):
        raise InvalidArgument("'documents' must be a list of {id, text} objects")
    try:
        return Tokenizer.as_documents(docs)
    except (KeyError, TypeError, ValueError):
        raise InvalidArgument("'documents' must be a list of {id, text} objects")


def _memberships(body: dict):
    """Explicit ``memberships`` or memberships derived from ``documents``."""
    if "memberships" in body:
        rows = body["memberships"]
        if not isinstance(rows, list) or any(not isinstance(r, list) or len(r) != 2 for r in rows):
            raise InvalidArgument("'memberships' must be a list of [group, item] pairs")
        for group, item in rows:
            if not isinstance(group, (str, int)) or isinstance(group, bool):
                raise InvalidArgument(f"Membership group must be a string or integer, got {group!r}")
            if not isinstance(item, str):
                raise InvalidArgument(f"Membership item must be a string, got {item!r}")
        return as_memberships(rows)
    documents = _documents(body)
    stopwords = _stopwords(body)
    if body.get("section_size") is not None:
        return PairwiseEngine.section_memberships(documents, _int(body, "section_size", None), stopwords)
    return as_memberships(Tokenizer.unnest_tokens(documents, 1, stopwords))


# ────────────────────────────────────────────────────────────────────
#  Tokenize
# ────────────────────────────────────────────────────────────────────
@app.route("/api/tokenize", methods=["POST"])
def tokenize_corpus():
    """Tokenize documents into (document_id, token) rows."""
    body = _body()
    documents = _documents(body)
    n = _int(body, "n", Config.DEFAULT_NGRAM_SIZE)
    with task_event(_sid(), "tokenize", inputs={"documents": len(documents), "n": n}) as ev:
        rows = Tokenizer.unnest_tokens(documents, n, _stopwords(body))
        counts = FrequencyTable.count_terms(rows)
        ev["outputs"] = {"tokens": len(rows), "terms": len(counts)}
    return _ok({
        "n": n,
        "tokens": [{"document_id": d, "token": t} for d, t in rows],
        "counts": counts,
    })


# ────────────────────────────────────────────────────────────────────
#  TF-IDF
# ────────────────────────────────────────────────────────────────────
@app.route("/api/tfidf", methods=["POST"])
def tf_idf():
    """Score tokens by tf-idf and rank them per document."""
    body = _body()
    documents = _documents(body)
    n = _int(body, "n", Config.DEFAULT_NGRAM_SIZE)
    top_k = _int(body, "top_k", Config.DEFAULT_TOP_K)
    with task_event(_sid(), "tf_idf", inputs={"documents": len(documents), "n": n}) as ev:
        rows = Tokenizer.unnest_tokens(documents, n, _stopwords(body))
        result = TfIdfScorer.bind_tf_idf(FrequencyTable.count_terms(rows), on_empty=body.get("on_empty"),
                                          documents=[d.id for d in documents])
        ev["outputs"] = {"records": len(result), "excluded": len(result.excluded_documents)}
    return _ok({
        "total_documents": result.total_documents,
        "excluded_documents": list(result.excluded_documents),
        "records": list(result.records),
        "top_terms": [
            {"document_id": doc_id, "terms": recs}
            for doc_id, recs in TfIdfScorer.top_terms(result, top_k).items()
        ],
    })


# ────────────────────────────────────────────────────────────────────
#  Pairwise statistics
# ────────────────────────────────────────────────────────────────────
@app.route("/api/pairwise/count", methods=["POST"])
def pairwise_count_route():
    """Co-occurrence counts between items sharing a group."""
    body = _body()
    memberships = _memberships(body)
    symmetric = bool(body.get("symmetric", False))
    with task_event(_sid(), "pairwise_count", inputs={"memberships": len(memberships)}) as ev:
        pairs = PairwiseEngine.pairwise_count(memberships, symmetric=symmetric)
        ev["outputs"] = {"pairs": len(pairs)}
    return _ok({"symmetric": symmetric, "pairs": pairs})


@app.route("/api/pairwise/correlation", methods=["POST"])
def pairwise_correlation_route():
    """Phi correlation between items across groups."""
    body = _body()
    memberships = _memberships(body)
    symmetric = bool(body.get("symmetric", False))
    min_freq = _int(body, "min_group_frequency", Config.MIN_GROUP_FREQUENCY)
    with task_event(_sid(), "pairwise_correlation",
                    inputs={"memberships": len(memberships), "min_group_frequency": min_freq}) as ev:
        pairs = PairwiseEngine.pairwise_correlation(memberships, min_group_frequency=min_freq,
                                                    symmetric=symmetric)
        ev["outputs"] = {"pairs": len(pairs)}
    return _ok({"symmetric": symmetric, "min_group_frequency": min_freq, "pairs": pairs})


# ────────────────────────────────────────────────────────────────────
#  Relationship graph
# ────────────────────────────────────────────────────────────────────
@app.route("/api/graph", methods=["POST"])
def relationship_graph():
    """Build a thresholded relationship graph and export it for rendering."""
    body = _body()
    source = body.get("source", "ngrams")
    fmt = body.get("fmt", "node_link")

    with task_event(_sid(), "graph", inputs={"source": source, "fmt": fmt}) as ev:
        if source == "ngrams":
            n = _int(body, "n", 2)
            rows = Tokenizer.unnest_tokens(_documents(body), n, _stopwords(body))
            edges = GraphBuilder.ngram_edges(FrequencyTable.count_terms(rows), n)
            directed = bool(body.get("directed", True))
        elif source == "count":
            directed = bool(body.get("directed", False))
            counts = PairwiseEngine.pairwise_count(_memberships(body), symmetric=not directed)
            edges = GraphBuilder.pair_edges(counts)
        elif source == "correlation":
            min_freq = _int(body, "min_group_frequency", Config.MIN_GROUP_FREQUENCY)
            directed = bool(body.get("directed", False))
            correlations = PairwiseEngine.pairwise_correlation(
                _memberships(body), min_group_frequency=min_freq, symmetric=not directed)
            edges = GraphBuilder.pair_edges(correlations)
        else:
            raise InvalidArgument(f"Unknown graph source {source!r}; expected ngrams, count or correlation")

        graph = GraphBuilder.build_graph(edges, min_weight=_float(body, "min_weight", None),
                                         directed=directed, comparison=body.get("comparison"))
        exported = GraphBuilder.export_graph(graph, fmt)
        ev["outputs"] = {"nodes": graph.n_nodes, "edges": graph.n_edges}

    if body.get("metrics"):
        exported["metrics"] = GraphBuilder.graph_metrics(graph)
    return _ok(exported)


# ────────────────────────────────────────────────────────────────────
#  Topic model
# ────────────────────────────────────────────────────────────────────
@app.route("/api/topics", methods=["POST"])
def topics():
    """Fit LDA and return the top terms per topic and document weights."""
    body = _body()
    documents = _documents(body)
    k = _int(body, "k", 2)
    seed = _int(body, "seed", Config.DEFAULT_RANDOM_STATE)
    top_n = _int(body, "top_n", 10)
    with task_event(_sid(), "topics", inputs={"documents": len(documents), "k": k}) as ev:
        counts = FrequencyTable.count_terms(Tokenizer.unnest_tokens(documents, 1, _stopwords(body)))
        model = TopicModeler.infer_topics(counts, k, seed=seed)
        ev["outputs"] = {"beta": len(model.beta), "gamma": len(model.gamma)}
    return _ok({
        "k": model.k,
        "top_terms": [
            {"topic": topic, "terms": recs}
            for topic, recs in TopicModeler.top_topic_terms(model, top_n).items()
        ],
        "gamma": list(model.gamma),
    })


# ────────────────────────────────────────────────────────────────────
#  Logs
# ────────────────────────────────────────────────────────────────────
@app.route("/api/logs/recent")
def recent_logs():
    """Return recent in-memory log entries."""
    n = request.args.get("n", 30, type=int)
    level = request.args.get("level", "INFO")
    return _ok(get_recent_logs(n=n, min_level=level))


@app.route("/api/pipeline-log")
def pipeline_log():
    """Return this session's structured task events."""
    n = request.args.get("n", 30, type=int)
    return _ok(get_pipeline_log(_sid(), n=n))


# ────────────────────────────────────────────────────────────────────
#  Error handlers
# ────────────────────────────────────────────────────────────────────
@app.errorhandler(InvalidArgument)
@app.errorhandler(CapacityExceeded)
def handle_bad_request(e):
    return _err(str(e), 400)


@app.errorhandler(EmptyDocument)
def handle_empty_document(e):
    return _err(str(e), 422)


@app.errorhandler(404)
def handle_404(e):
    logger.debug("404 Not Found: %s", request.url)
    return jsonify({"status": "error", "message": "Resource not found"}), 404


@app.errorhandler(Exception)
def handle_exception(e):
    """Handle unexpected exceptions, but let HTTP exceptions pass through."""
    from werkzeug.exceptions import HTTPException
    if isinstance(e, HTTPException):
        logger.debug("HTTP exception: %s %s", e.code, e.description)
        return e

    logger.critical("Unhandled exception: %s", e, exc_info=True)
    return _err(f"Internal error: {e}", 500)


# ────────────────────────────────────────────────────────────────────
#  Run
# ────────────────────────────────────────────────────────────────────
if __name__ == "__main__":
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", 5000))
    logger.info("Starting %s v%s on http://%s:%d", Config.APP_NAME, Config.APP_VERSION, host, port)
    app.run(debug=Config.DEBUG, host=host, port=port)
