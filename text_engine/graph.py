"""
Corpus Relations – Relationship Graph Builder
==============================================
Assembles a weighted term graph from n-gram adjacency counts or pairwise
statistics and hands it to a renderer:

  • build_graph     — threshold filter, node set from retained endpoints
  • ngram_edges     — bigram counts → (word1, word2, n) adjacency edges
  • pair_edges      — PairCount / PairCorrelation records → edges
  • graph_metrics   — degree, PageRank, components (networkx)
  • export_graph    — node-link JSON for D3 / Cytoscape / vis.js
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

import networkx as nx

from config import Config
from text_engine.errors import InvalidArgument
from text_engine.records import Edge, Graph
from text_engine.tokenizer import Tokenizer

logger = logging.getLogger("corel.graph")

_COMPARATORS = {
    "ge": lambda w, t: w >= t,
    "gt": lambda w, t: w > t,
}


# ════════════════════════════════════════════════════════════════════
#  Graph Builder
# ════════════════════════════════════════════════════════════════════

class GraphBuilder:
    """Thresholded relationship graphs, their metrics and exports."""

    # ----------------------------------------------------------------
    #  Edge sources
    # ----------------------------------------------------------------
    @staticmethod
    def ngram_edges(counts: Iterable, n: int = 2) -> List[Edge]:
        """
        Adjacency edges from n-gram counts.

        *counts* holds TermCount records / ``(document_id, token, n)`` rows, or
        ``(token, n)`` pairs. Counts of the same n-gram are summed across
        documents, and for ``n > 2`` each consecutive word pair inside the
        n-gram becomes an edge.
        """
        if n < 2:
            raise InvalidArgument(f"Adjacency edges need n >= 2, got {n}")
        totals: Counter = Counter()
        for row in counts:
            row = tuple(row)
            token, count = (row[1], row[2]) if len(row) == 3 else row
            parts = Tokenizer.separate_ngram(token, n)
            for a, b in zip(parts, parts[1:]):
                totals[(a, b)] += count
        return [Edge(a, b, float(w)) for (a, b), w in totals.items()]

    @staticmethod
    def pair_edges(records: Iterable) -> List[Edge]:
        """Edges from ``(item1, item2, value)`` records (counts or correlations)."""
        return [Edge(a, b, float(w)) for a, b, w in records]

    # ----------------------------------------------------------------
    #  Builder
    # ----------------------------------------------------------------
    @staticmethod
    def build_graph(
        edges: Iterable,
        min_weight: Optional[float] = None,
        directed: bool = False,
        comparison: Optional[str] = None,
    ) -> Graph:
        """
        Build an immutable weighted graph.

        Parameters
        ----------
        edges : iterable of Edge / ``(item1, item2, weight)``
        min_weight : float
            Threshold (``Config.GRAPH_MIN_WEIGHT`` by default); must be >= 0.
        directed : bool
            Directed graphs keep ``(a, b)`` and ``(b, a)`` as distinct edges.
            Undirected graphs merge them into one edge in canonical order,
            keeping the larger weight when the two directions disagree.
        comparison : "ge" | "gt"
            Keep edges with ``weight >= min_weight`` or ``weight > min_weight``.

        Self-loops are dropped; nodes without a retained edge are not created.
        """
        threshold = Config.GRAPH_MIN_WEIGHT if min_weight is None else min_weight
        mode = comparison or Config.GRAPH_COMPARISON
        if threshold < 0:
            raise InvalidArgument(f"min_weight must be >= 0, got {threshold}")
        if mode not in _COMPARATORS:
            raise InvalidArgument(f"Unknown comparison {mode!r}; expected one of {Config.GRAPH_COMPARISONS}")
        keep = _COMPARATORS[mode]

        merged: Dict[tuple, float] = {}
        total = 0
        for source, target, weight in edges:
            total += 1
            if source == target:
                continue
            key = (source, target) if directed or source < target else (target, source)
            if key not in merged or weight > merged[key]:
                merged[key] = weight

        retained = sorted(
            (Edge(a, b, float(w)) for (a, b), w in merged.items() if keep(w, threshold)),
            key=lambda e: (-e.weight, e.source, e.target),
        )
        nodes = sorted({e.source for e in retained} | {e.target for e in retained})
        logger.info("build_graph: %d input edges → %d edges, %d nodes (min_weight=%s %s, directed=%s)",
                    total, len(retained), len(nodes), mode, threshold, directed)
        return Graph(nodes=tuple(nodes), edges=tuple(retained), directed=directed)

    # ----------------------------------------------------------------
    #  Analysis
    # ----------------------------------------------------------------
    @staticmethod
    def to_networkx(graph: Graph):
        """networkx view of *graph* (DiGraph when directed)."""
        G = nx.DiGraph() if graph.directed else nx.Graph()
        G.add_nodes_from(graph.nodes)
        for e in graph.edges:
            G.add_edge(e.source, e.target, weight=e.weight)
        return G

    @staticmethod
    def graph_metrics(graph: Graph) -> Dict[str, Any]:
        """Node-level degree / PageRank and graph-level connectivity."""
        if not graph.nodes:
            return {"n_nodes": 0, "n_edges": 0, "density": 0.0,
                    "n_components": 0, "node_metrics": {}, "top_nodes_by_degree": []}

        G = GraphBuilder.to_networkx(graph)
        degree = dict(G.degree())
        weighted = dict(G.degree(weight="weight"))
        pagerank = nx.pagerank(G, weight="weight")
        components = (nx.number_weakly_connected_components(G) if graph.directed
                      else nx.number_connected_components(G))

        node_metrics = {
            node: {
                "degree": degree[node],
                "weighted_degree": round(float(weighted[node]), 4),
                "pagerank": round(float(pagerank[node]), 6),
            }
            for node in graph.nodes
        }
        top_nodes = sorted(graph.nodes, key=lambda x: (-degree[x], x))[:10]
        return {
            "n_nodes": graph.n_nodes,
            "n_edges": graph.n_edges,
            "density": round(nx.density(G), 4),
            "n_components": components,
            "node_metrics": node_metrics,
            "top_nodes_by_degree": top_nodes,
        }

    # ----------------------------------------------------------------
    #  Export
    # ----------------------------------------------------------------
    @staticmethod
    def export_graph(graph: Graph, fmt: str = "node_link") -> Dict[str, Any]:
        """
        Export *graph* for front-end rendering.
        fmt: 'node_link' (D3/vis.js), 'cytoscape', 'adjacency_matrix'
        """
        degree: Counter = Counter()
        for e in graph.edges:
            degree[e.source] += 1
            degree[e.target] += 1
        nodes = [{"id": n, "label": n, "degree": degree[n]} for n in graph.nodes]
        links = [
            {"id": f"{e.source}__{e.target}", "source": e.source, "target": e.target,
             "weight": e.weight, "label": f"{e.weight:g}"}
            for e in graph.edges
        ]

        if fmt == "node_link":
            return {
                "format": "node_link",
                "directed": graph.directed,
                "nodes": nodes,
                "links": links,
                "metadata": {"n_nodes": graph.n_nodes, "n_edges": graph.n_edges},
            }

        if fmt == "cytoscape":
            elements = [{"data": node, "group": "nodes"} for node in nodes]
            elements += [{"data": link, "group": "edges"} for link in links]
            return {"format": "cytoscape", "directed": graph.directed, "elements": elements}

        if fmt == "adjacency_matrix":
            idx = {n: i for i, n in enumerate(graph.nodes)}
            size = len(graph.nodes)
            matrix = [[0.0] * size for _ in range(size)]
            for e in graph.edges:
                i, j = idx[e.source], idx[e.target]
                matrix[i][j] = e.weight
                if not graph.directed:
                    matrix[j][i] = e.weight
            return {"format": "adjacency_matrix", "node_ids": list(graph.nodes), "matrix": matrix}

        raise InvalidArgument(f"Unknown export format {fmt!r}; expected one of {Config.EXPORT_FORMATS}")
