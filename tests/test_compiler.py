"""Tests for the graph compiler."""

import pytest

from attacktree.compiler import GraphCompiler, compile_text
from attacktree.errors import CompileError, DuplicateId, UnknownReference
from attacktree.parser import parse_text
from attacktree.schemas import Category, CategoryStyle, Theme
from attacktree.themes import THEMES, ThemeRegistry


def _pairs(graph):
    return [(edge.source, edge.target) for edge in graph.edges]


class TestSeedCompile:

    def test_four_nodes_three_edges(self, compiler, seed_document):
        graph = compiler.compile(seed_document)
        assert len(graph.nodes) == 4
        assert len(graph.edges) == 3

    def test_each_category_once(self, compiler, seed_document):
        graph = compiler.compile(seed_document)
        assert sorted(node.category.value for node in graph.nodes) == ['attack', 'fact', 'goal', 'mitigation']

    def test_node_and_edge_order(self, compiler, seed_document):
        graph = compiler.compile(seed_document)
        assert [node.id for node in graph.nodes] == ['reality', 'initial_attack', 'defense', 'compromise']
        assert _pairs(graph) == [
            ('reality', 'initial_attack'),
            ('initial_attack', 'defense'),
            ('initial_attack', 'compromise'),
        ]

    def test_dot_contents(self, compiler, seed_document):
        dot = compiler.compile(seed_document).dot
        assert dot.startswith('// Attack Tree: New Attack Tree\ndigraph AttackTree {')
        assert 'label="New Attack Tree"' in dot
        assert '\treality -> initial_attack' in dot
        assert '\tinitial_attack -> compromise' in dot
        assert dot.index('\treality [') < dot.index('\tinitial_attack [') < dot.index('\tdefense [') < dot.index('\tcompromise [')

    def test_title_and_theme(self, compiler, seed_document):
        graph = compiler.compile(seed_document)
        assert graph.title == 'New Attack Tree'
        assert graph.theme == 'default'

    def test_lookup_helpers(self, compiler, seed_document):
        graph = compiler.compile(seed_document)
        assert graph.node('defense').label == 'Defense mechanism'
        assert graph.node('missing') is None
        assert graph.edge('reality', 'initial_attack').title == 'reality->initial_attack'
        assert graph.edge('defense', 'reality') is None


class TestDeterminism:

    def test_repeated_compile_is_byte_identical(self, compiler, seed_document):
        assert compiler.compile(seed_document).dot == compiler.compile(seed_document).dot

    def test_compile_text_twice_is_identical(self, seed_text):
        assert compile_text(seed_text) == compile_text(seed_text)

    def test_equal_documents_compile_identically(self, compiler, seed_text):
        first = compiler.compile(parse_text(seed_text))
        second = compiler.compile(parse_text(seed_text))
        assert first == second


class TestEdges:

    def test_duplicate_predecessors_collapse(self, compiler):
        doc = parse_text(
            'facts:\n- reality: Start\n'
            'attacks:\n- a: A\n  from: [reality, reality, reality]\n'
        )
        graph = compiler.compile(doc)
        assert _pairs(graph) == [('reality', 'a')]
        assert graph.dot.count('reality -> a') == 1

    def test_edges_grouped_by_target_in_listed_order(self, compiler):
        doc = parse_text(
            'facts:\n- f1: F1\n- f2: F2\n'
            'attacks:\n- a: A\n  from: [f2, f1]\n'
            'goals:\n- g: G\n  from: [a, f1]\n'
        )
        assert _pairs(compiler.compile(doc)) == [('f2', 'a'), ('f1', 'a'), ('a', 'g'), ('f1', 'g')]

    def test_edge_labels_are_emitted(self, compiler):
        doc = parse_text(
            'facts:\n- reality: Start\n'
            'attacks:\n- a: A\n  from:\n  - reality: "#yolosec"\n'
        )
        graph = compiler.compile(doc)
        assert graph.edges[0].label == '#yolosec'
        assert 'label="#yolosec"' in graph.dot

    def test_forward_edges_are_not_backwards(self, compiler, seed_document):
        graph = compiler.compile(seed_document)
        assert not any(edge.backwards for edge in graph.edges)

    def test_edge_into_earlier_category_is_backwards(self, compiler):
        doc = parse_text(
            'facts:\n- reality: Start\n'
            'attacks:\n'
            '- phish: Phishing\n  from: [reality]\n'
            '- bypass: Bypass MFA\n  from: [phish, mfa]\n'
            'mitigations:\n- mfa: MFA\n  from: [phish]\n'
        )
        graph = compiler.compile(doc)
        edge = graph.edge('mfa', 'bypass')
        assert edge.backwards
        assert edge.attrs['constraint'] == 'false'
        assert edge.attrs['color'] == THEMES.default.backwards_edge_color
        assert not graph.edge('phish', 'bypass').backwards

    def test_declared_backwards_edge(self, compiler):
        doc = parse_text(
            'attacks:\n- a: A\n- b: B\n  from: [a]\n  backwards: [a]\n'
        )
        assert compiler.compile(doc).edge('a', 'b').backwards

    def test_ids_with_colons_are_not_ports(self):
        graph = compile_text('facts:\n- cve:2021: Known CVE\nattacks:\n- a: A\n  from: ["cve:2021"]\n')
        assert _pairs(graph) == [('cve:2021', 'a')]
        assert '\t"cve:2021" [' in graph.dot
        assert '\t"cve:2021" -> a' in graph.dot
        assert '\tcve:2021 -> a' not in graph.dot


class TestReferentialIntegrity:

    def test_unknown_reference(self, compiler):
        doc = parse_text(
            'facts:\n- reality: Start\n'
            'attacks:\n- initial_attack: Attack\n  from: [ghost]\n'
        )
        with pytest.raises(UnknownReference) as exc:
            compiler.compile(doc)
        assert exc.value.node_id == 'initial_attack'
        assert exc.value.missing_id == 'ghost'
        assert 'initial_attack' in str(exc.value)
        assert 'ghost' in str(exc.value)

    def test_first_violation_in_declaration_order(self, compiler):
        doc = parse_text(
            'goals:\n- g: G\n  from: [missing_goal_ref]\n'
            'attacks:\n- a1: A1\n  from: [ok]\n- a2: A2\n  from: [missing_a2, missing_a2b]\n'
            'facts:\n- ok: fine\n'
        )
        with pytest.raises(UnknownReference) as exc:
            compiler.compile(doc)
        assert (exc.value.node_id, exc.value.missing_id) == ('a2', 'missing_a2')

    def test_duplicate_id_across_categories(self, compiler):
        doc = parse_text(
            'facts:\n- shared: As fact\n'
            'goals:\n- shared: As goal\n'
        )
        with pytest.raises(DuplicateId) as exc:
            compiler.compile(doc)
        assert exc.value.node_id == 'shared'

    def test_duplicate_id_within_category(self, compiler):
        doc = parse_text('attacks:\n- a: First\n- a: Second\n')
        with pytest.raises(DuplicateId):
            compiler.compile(doc)

    def test_errors_are_compile_errors(self, compiler):
        doc = parse_text('attacks:\n- a: A\n  from: [nope]\n')
        with pytest.raises(CompileError):
            compiler.compile(doc)


class TestTheming:

    def test_unknown_theme_falls_back_to_default(self, compiler, seed_document):
        graph = compiler.compile(seed_document, theme='no-such-theme')
        assert graph.theme == 'default'
        assert graph.dot == compiler.compile(seed_document).dot

    def test_document_theme(self, compiler):
        doc = parse_text('theme: dark\nfacts:\n- f: F\n')
        graph = compiler.compile(doc)
        assert graph.theme == 'dark'
        assert graph.nodes[0].attrs['fillcolor'] == THEMES.resolve('dark').fact.fillcolor

    def test_override_beats_document_theme(self, compiler):
        doc = parse_text('theme: dark\nfacts:\n- f: F\n')
        assert compiler.compile(doc, theme='classic').theme == 'classic'

    def test_category_styles_applied(self, compiler, seed_document):
        graph = compiler.compile(seed_document, theme='classic')
        classic = THEMES.resolve('classic')
        assert graph.node('initial_attack').attrs == classic.attack.attrs()
        assert graph.node('defense').attrs['shape'] == 'octagon'
        assert graph.node('compromise').attrs['shape'] == 'invhouse'

    def test_reality_fact_gets_its_own_style(self, compiler, seed_document):
        graph = compiler.compile(seed_document)
        assert graph.node('reality').attrs['fillcolor'] == THEMES.default.reality.fillcolor
        assert graph.node('reality').category is Category.FACT

    def test_injected_registry(self, seed_document):
        plain = CategoryStyle(fillcolor='#FFFFFF', color='#000000')
        registry = ThemeRegistry([Theme(name='mono', fact=plain, attack=plain, mitigation=plain, goal=plain)],
                                 default='mono')
        graph = GraphCompiler(registry).compile(seed_document, theme='default')
        assert graph.theme == 'mono'
        assert all(node.attrs['fillcolor'] == '#FFFFFF' for node in graph.nodes)


class TestLabels:

    def test_quotes_are_escaped(self, compiler):
        doc = parse_text("facts:\n- f: 'say \"hi\"'\n")
        assert 'label="say \\"hi\\""' in compiler.compile(doc).dot

    def test_html_like_labels_stay_plain(self, compiler):
        doc = parse_text("facts:\n- f: '<b>bold</b>'\n")
        assert 'label="<b>bold</b>"' in compiler.compile(doc).dot
