"""Relationship graph construction, metrics and export."""

import dataclasses

import pytest

from text_engine.errors import InvalidArgument
from text_engine.frequency import FrequencyTable
from text_engine.graph import GraphBuilder
from text_engine.pairwise import PairwiseEngine
from text_engine.records import Edge
from text_engine.tokenizer import Tokenizer


def test_threshold_comparisons_and_isolated_nodes():
    edges = [("a", "b", 2), ("b", "c", 1)]
    assert GraphBuilder.build_graph(edges, min_weight=1, comparison="ge").n_edges == 2

    graph = GraphBuilder.build_graph(edges, min_weight=1, comparison="gt")
    assert graph.edges == (Edge("a", "b", 2.0),)
    assert graph.nodes == ("a", "b")


def test_symmetric_correlations_merge_into_one_undirected_edge():
    rows = [("g1", "x"), ("g1", "y"), ("g2", "x"), ("g2", "y"), ("g3", "z")]
    records = PairwiseEngine.pairwise_correlation(rows)
    graph = GraphBuilder.build_graph(GraphBuilder.pair_edges(records), min_weight=0.5)
    assert graph.edges == (Edge("x", "y", pytest.approx(1.0)),)
    assert not graph.directed


def test_directed_keeps_both_orientations():
    graph = GraphBuilder.build_graph([("a", "b", 1), ("b", "a", 1)], directed=True)
    assert {(e.source, e.target) for e in graph.edges} == {("a", "b"), ("b", "a")}


def test_undirected_keeps_larger_weight_and_drops_self_loops():
    graph = GraphBuilder.build_graph([("a", "b", 1), ("b", "a", 3), ("a", "a", 9)])
    assert graph.edges == (Edge("a", "b", 3.0),)


def test_graph_is_immutable():
    graph = GraphBuilder.build_graph([("a", "b", 1)])
    with pytest.raises(dataclasses.FrozenInstanceError):
        graph.nodes = ()


def test_bad_arguments():
    with pytest.raises(InvalidArgument):
        GraphBuilder.build_graph([("a", "b", 1)], comparison="le")
    with pytest.raises(InvalidArgument):
        GraphBuilder.build_graph([("a", "b", 1)], min_weight=-1)
    with pytest.raises(InvalidArgument):
        GraphBuilder.ngram_edges([("a", 1)], n=1)


def test_bigram_adjacency_edges():
    counts = FrequencyTable.count_terms(Tokenizer.unnest_tokens([("d1", "the cat sat"), ("d2", "the cat")], 2))
    edges = {(e.source, e.target): e.weight for e in GraphBuilder.ngram_edges(counts)}
    assert edges == {("the", "cat"): 2.0, ("cat", "sat"): 1.0}

    graph = GraphBuilder.build_graph(GraphBuilder.ngram_edges(counts), min_weight=2, directed=True)
    assert graph.edges == (Edge("the", "cat", 2.0),)


def test_trigram_counts_become_word_pair_edges():
    edges = GraphBuilder.ngram_edges([("new york city", 4)], n=3)
    assert {(e.source, e.target, e.weight) for e in edges} == {("new", "york", 4.0), ("york", "city", 4.0)}


def test_metrics():
    graph = GraphBuilder.build_graph([("a", "b", 1), ("b", "c", 2)])
    metrics = GraphBuilder.graph_metrics(graph)
    assert metrics["n_nodes"] == 3
    assert metrics["n_components"] == 1
    assert metrics["node_metrics"]["b"]["degree"] == 2
    assert metrics["node_metrics"]["b"]["weighted_degree"] == 3.0
    assert metrics["top_nodes_by_degree"][0] == "b"
    assert sum(m["pagerank"] for m in metrics["node_metrics"].values()) == pytest.approx(1.0, abs=1e-4)

    assert GraphBuilder.graph_metrics(GraphBuilder.build_graph([]))["n_nodes"] == 0


def test_networkx_view():
    directed = GraphBuilder.to_networkx(GraphBuilder.build_graph([("a", "b", 1)], directed=True))
    assert directed.is_directed()
    assert directed["a"]["b"]["weight"] == 1.0


def test_export_formats():
    graph = GraphBuilder.build_graph([("a", "b", 2), ("b", "c", 1)])

    node_link = GraphBuilder.export_graph(graph, "node_link")
    assert [n["id"] for n in node_link["nodes"]] == ["a", "b", "c"]
    assert node_link["links"][0]["source"] == "a"
    assert node_link["metadata"] == {"n_nodes": 3, "n_edges": 2}

    cyto = GraphBuilder.export_graph(graph, "cytoscape")
    assert sum(1 for el in cyto["elements"] if el["group"] == "edges") == 2

    adjacency = GraphBuilder.export_graph(graph, "adjacency_matrix")
    assert adjacency["matrix"][0][1] == adjacency["matrix"][1][0] == 2

    with pytest.raises(InvalidArgument):
        GraphBuilder.export_graph(graph, "graphml")
