import pytest

from pagetree_kit.errors import (
    AmbiguousIdReference,
    CapabilityError,
    CycleError,
    DocumentNotFound,
    ErrorKind,
    InvalidTargetType,
    NodeNotFound,
    ParseError,
    SizeLimitError,
    StructuralError,
    TranslationResolutionError,
    TraversalBudgetExceeded,
    TreeEngineError,
)


class TestErrors:
    @pytest.mark.parametrize(
        "error_type, kind",
        [
            (ParseError, ErrorKind.PARSE),
            (InvalidTargetType, ErrorKind.STRUCTURAL),
            (NodeNotFound, ErrorKind.REFERENCE),
            (AmbiguousIdReference, ErrorKind.REFERENCE),
            (DocumentNotFound, ErrorKind.REFERENCE),
            (TraversalBudgetExceeded, ErrorKind.CYCLE),
            (SizeLimitError, ErrorKind.SIZE_LIMIT),
            (TranslationResolutionError, ErrorKind.TRANSLATION_RESOLUTION),
            (CapabilityError, ErrorKind.CAPABILITY),
        ],
    )
    def test_kinds(self, error_type, kind) -> None:
        assert error_type("x").kind is kind
        assert issubclass(error_type, TreeEngineError)

    def test_hierarchy(self) -> None:
        assert issubclass(InvalidTargetType, StructuralError)
        assert issubclass(TraversalBudgetExceeded, CycleError)

    def test_to_info(self) -> None:
        error = NodeNotFound("missing", node_id="a", path=[0, 1], details={"hint": "path"})

        info = error.to_info()

        assert info.code == "NodeNotFound"
        assert info.path == (0, 1)
        assert info.to_dict() == {
            "kind": "reference_error",
            "code": "NodeNotFound",
            "message": "missing",
            "nodeId": "a",
            "path": [0, 1],
            "details": {"hint": "path"},
        }

    def test_defaults(self) -> None:
        error = ParseError("bad")

        assert str(error) == "bad"
        assert error.path is None
        assert error.to_info().to_dict()["path"] is None
        assert error.details == {}
