"""Unit tests for the program model and method resolution."""

from dataclasses import replace

import pytest

from calltrace.core.config import ExploreConfig, ResolutionMode
from calltrace.core.explorer import CallGraphExplorer, MethodResolver, ResolutionStatus, render
from calltrace.core.models import (
    ClassDescriptor,
    InvocationSite,
    Marker,
    MethodDescriptor,
    MethodSignature,
)
from calltrace.core.program import Program, split_target


def make_method(
    owner: str, name: str, *parameters: str, calls: tuple[InvocationSite, ...] = ()
) -> MethodDescriptor:
    """Create a test method with a fixed parameter list."""
    return MethodDescriptor(
        signature=MethodSignature(owner=owner, name=name, parameter_types=parameters),
        invocations=calls,
        min_arity=len(parameters),
        max_arity=len(parameters),
    )


@pytest.fixture
def overloaded_program() -> Program:
    """Create a class with two overloads of process and a caller."""
    return Program(
        [
            ClassDescriptor(
                qualified_name="svc.Service",
                methods=(
                    make_method("svc.Service", "process", "int"),
                    make_method("svc.Service", "process", "int", "int"),
                    make_method(
                        "svc.Service",
                        "run",
                        calls=(InvocationSite(text="svc.Service.process", line=7),),
                    ),
                ),
            ),
            ClassDescriptor(
                qualified_name="svc.Special",
                bases=("svc.Service",),
            ),
        ]
    )


class TestProgram:
    """Tests for Program lookups."""

    def test_find_class(self, overloaded_program: Program) -> None:
        """Test class lookup by qualified name."""
        assert overloaded_program.find_class("svc.Service") is not None
        assert overloaded_program.find_class("Service") is None

    def test_find_method_by_name_first_declared(self, overloaded_program: Program) -> None:
        """Test that the first declared same-name method wins."""
        cls = overloaded_program.find_class("svc.Service")
        assert cls is not None

        method = overloaded_program.find_method_by_name(cls, "process")

        assert method is not None
        assert method.signature.parameter_types == ("int",)

    def test_find_method_by_name_ignores_bases(self, overloaded_program: Program) -> None:
        """Test that declared-method lookup does not search base classes."""
        cls = overloaded_program.find_class("svc.Special")
        assert cls is not None

        assert overloaded_program.find_method_by_name(cls, "process") is None
        assert len(overloaded_program.find_methods(cls, "process")) == 2

    def test_resolve_invocation_walks_bases(self, overloaded_program: Program) -> None:
        """Test that call sites bind through base classes."""
        method = overloaded_program.resolve_invocation(InvocationSite(text="svc.Special.run"))

        assert method is not None
        assert method.signature.owner == "svc.Service"

    def test_resolve_invocation_unknown(self, overloaded_program: Program) -> None:
        """Test that unknown owners and bare names do not resolve."""
        assert overloaded_program.resolve_invocation(InvocationSite(text="print")) is None
        assert overloaded_program.resolve_invocation(InvocationSite(text="x.Y.z")) is None

    def test_duplicate_class_keeps_first(self) -> None:
        """Test that a second class with the same name is ignored."""
        program = Program(
            [
                ClassDescriptor(qualified_name="A", methods=(make_method("A", "first"),)),
                ClassDescriptor(qualified_name="A", methods=(make_method("A", "second"),)),
            ]
        )

        assert program.num_classes == 1
        assert [m.name for m in program.classes["A"].methods] == ["first"]

    def test_lookup_order_diamond_inheritance(self) -> None:
        """Test that each base appears once, depth-first in declared order."""
        program = Program(
            [
                ClassDescriptor(qualified_name="Root"),
                ClassDescriptor(qualified_name="Left", bases=("Root",)),
                ClassDescriptor(qualified_name="Right", bases=("Root",)),
                ClassDescriptor(qualified_name="Leaf", bases=("Left", "Right", "missing.Base")),
            ]
        )
        leaf = program.find_class("Leaf")
        assert leaf is not None

        order = [c.qualified_name for c in program.lookup_order(leaf)]

        assert order == ["Leaf", "Left", "Root", "Right"]

    def test_find_is_sorted_substring_match(self, overloaded_program: Program) -> None:
        """Test method search by qualified name substring."""
        names = [m.signature.display() for m in overloaded_program.find("process")]

        assert names == ["svc.Service.process(int)", "svc.Service.process(int, int)"]
        assert overloaded_program.find("nothing") == []

    def test_split_target(self) -> None:
        """Test splitting call text into owner and method."""
        assert split_target("a.b.C.m") == ("a.b.C", "m")
        assert split_target("print") is None
        assert split_target("trailing.") is None


class TestNameResolution:
    """Tests for NAME mode."""

    def test_first_match_ignores_arguments(self, overloaded_program: Program) -> None:
        """Test that NAME mode takes the first declared overload."""
        resolver = MethodResolver(overloaded_program)

        resolution = resolver.resolve(InvocationSite(text="svc.Service.process", arguments=2))

        assert resolver.mode is ResolutionMode.NAME
        assert resolution.status is ResolutionStatus.RESOLVED
        assert resolution.method is not None
        assert resolution.method.signature.parameter_types == ("int",)

    def test_unresolved(self, overloaded_program: Program) -> None:
        """Test that unknown targets are UNRESOLVED."""
        resolution = MethodResolver(overloaded_program).resolve(InvocationSite(text="len"))

        assert resolution.status is ResolutionStatus.UNRESOLVED
        assert resolution.method is None


class TestSignatureResolution:
    """Tests for SIGNATURE mode."""

    def test_argument_count_selects_overload(self, overloaded_program: Program) -> None:
        """Test that the argument count picks the matching overload."""
        resolver = MethodResolver(overloaded_program, ResolutionMode.SIGNATURE)

        resolution = resolver.resolve(InvocationSite(text="svc.Service.process", arguments=2))

        assert resolution.status is ResolutionStatus.RESOLVED
        assert resolution.method is not None
        assert resolution.method.signature.parameter_types == ("int", "int")

    def test_unknown_count_is_ambiguous(self, overloaded_program: Program) -> None:
        """Test that every overload is a candidate when the count is unknown."""
        resolver = MethodResolver(overloaded_program, ResolutionMode.SIGNATURE)

        resolution = resolver.resolve(InvocationSite(text="svc.Service.process"))

        assert resolution.status is ResolutionStatus.AMBIGUOUS
        assert len(resolution.candidates) == 2

    def test_no_matching_arity_is_unresolved(self, overloaded_program: Program) -> None:
        """Test that no overload accepting the count means UNRESOLVED."""
        resolver = MethodResolver(overloaded_program, ResolutionMode.SIGNATURE)

        resolution = resolver.resolve(InvocationSite(text="svc.Service.process", arguments=3))

        assert resolution.status is ResolutionStatus.UNRESOLVED

    def test_inherited_overloads(self, overloaded_program: Program) -> None:
        """Test that overloads are found on a base class."""
        resolver = MethodResolver(overloaded_program, ResolutionMode.SIGNATURE)

        resolution = resolver.resolve(InvocationSite(text="svc.Special.process", arguments=1))

        assert resolution.status is ResolutionStatus.RESOLVED

    def test_ambiguous_leaf_in_tree(self, overloaded_program: Program) -> None:
        """Test that exploration reports ambiguity as a leaf listing candidates."""
        config = ExploreConfig(resolution=ResolutionMode.SIGNATURE)

        tree = CallGraphExplorer(overloaded_program, config).explore("svc.Service", "run")

        leaf = tree.children[0]
        assert leaf.marker is Marker.AMBIGUOUS
        assert leaf.line == 7
        assert render(tree) == (
            "svc.Service.run\n"
            "  svc.Service.process (ambiguous: svc.Service.process(int), "
            "svc.Service.process(int, int))\n"
        )

    def test_overload_stubs_defer_to_implementation(self) -> None:
        """Test that @overload stubs give way to the implementation."""
        stubs = [
            replace(make_method("svc.Codec", "encode", "int"), is_overload=True),
            replace(make_method("svc.Codec", "encode", "str"), is_overload=True),
        ]
        implementation = MethodDescriptor(
            signature=MethodSignature("svc.Codec", "encode", ("Any",)),
            min_arity=1,
            max_arity=1,
        )
        program = Program(
            [ClassDescriptor(qualified_name="svc.Codec", methods=(*stubs, implementation))]
        )
        resolver = MethodResolver(program, ResolutionMode.SIGNATURE)

        resolution = resolver.resolve(InvocationSite(text="svc.Codec.encode", arguments=1))

        assert resolution.status is ResolutionStatus.RESOLVED
        assert resolution.method is implementation

    def test_overload_stubs_alone_are_candidates(self) -> None:
        """Test that stubs still resolve when no implementation is loaded."""
        stubs = (
            replace(make_method("svc.Codec", "encode", "int"), is_overload=True),
            replace(make_method("svc.Codec", "encode", "int", "int"), is_overload=True),
        )
        program = Program([ClassDescriptor(qualified_name="svc.Codec", methods=stubs)])
        resolver = MethodResolver(program, ResolutionMode.SIGNATURE)

        resolution = resolver.resolve(InvocationSite(text="svc.Codec.encode", arguments=2))

        assert resolution.method is stubs[1]


class TestArity:
    """Tests for MethodDescriptor.accepts."""

    def test_bounded(self) -> None:
        method = MethodDescriptor(
            signature=MethodSignature("A", "m", ("int", "int")), min_arity=1, max_arity=2
        )

        assert not method.accepts(0)
        assert method.accepts(1)
        assert method.accepts(2)
        assert not method.accepts(3)

    def test_unbounded(self) -> None:
        method = MethodDescriptor(signature=MethodSignature("A", "m", ("*Any",)), max_arity=None)

        assert method.accepts(0)
        assert method.accepts(50)
