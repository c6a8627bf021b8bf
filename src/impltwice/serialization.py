"""
Serialization helpers for impltwice specs (SharedSpec, SingleSpec).

Provides lossless JSON/YAML round-trip via an intermediate dict
representation. Fragments are stored as their token lists (with the
rendered text alongside for readability); bodies keep their verbatim text.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence, Union

import yaml

from impltwice.model import (
    Body,
    GenericKind,
    GenericParam,
    SharedSpec,
    SingleSpec,
    TraitRef,
    TypeExpr,
    WhereClause,
)

Spec = Union[SharedSpec, SingleSpec]


def generic_to_dict(p: GenericParam) -> Dict[str, Any]:
    return {
        "name": p.name,
        "kind": p.kind.value,
        "bounds": list(p.bounds),
        "const_type": p.const_type,
        "default": p.default,
    }


def generic_from_dict(d: Dict[str, Any]) -> GenericParam:
    return GenericParam(
        name=d["name"],
        kind=GenericKind(d.get("kind", "type")),
        bounds=tuple(d.get("bounds", [])),
        const_type=d.get("const_type"),
        default=d.get("default"),
    )


def fragment_to_dict(f: TypeExpr | TraitRef | WhereClause | None) -> Dict[str, Any] | None:
    if f is None:
        return None
    return {"text": f.text, "tokens": list(f.tokens)}


def type_from_dict(d: Dict[str, Any]) -> TypeExpr:
    return TypeExpr(tuple(d["tokens"]))


def trait_from_dict(d: Dict[str, Any] | None) -> TraitRef | None:
    if d is None:
        return None
    return TraitRef(tuple(d["tokens"]))


def where_from_dict(d: Dict[str, Any] | None) -> WhereClause | None:
    if d is None:
        return None
    return WhereClause(tuple(d["tokens"]))


def body_to_dict(b: Body) -> Dict[str, Any]:
    return {"text": b.text, "tokens": list(b.tokens)}


def body_from_dict(d: Dict[str, Any]) -> Body:
    return Body(text=d["text"], tokens=tuple(d.get("tokens", [])))


def _common_to_dict(spec: Spec) -> Dict[str, Any]:
    return {
        "generics": [generic_to_dict(p) for p in spec.generics],
        "trait_ref": fragment_to_dict(spec.trait_ref),
        "where_clause": fragment_to_dict(spec.where_clause),
        "body": body_to_dict(spec.body),
    }


def spec_to_dict(spec: Spec) -> Dict[str, Any]:
    if isinstance(spec, SharedSpec):
        return {
            "kind": "shared",
            "targets": [fragment_to_dict(t) for t in spec.targets],
            **_common_to_dict(spec),
        }
    if isinstance(spec, SingleSpec):
        return {
            "kind": "single",
            "target": fragment_to_dict(spec.target),
            "index": spec.index,
            "total": spec.total,
            **_common_to_dict(spec),
        }
    raise TypeError(f"Unsupported spec type: {type(spec)}")


def spec_from_dict(d: Dict[str, Any]) -> Spec:
    kind = d.get("kind")
    generics = tuple(generic_from_dict(p) for p in d.get("generics", []))
    trait_ref = trait_from_dict(d.get("trait_ref"))
    where_clause = where_from_dict(d.get("where_clause"))
    body = body_from_dict(d["body"])
    if kind == "shared":
        return SharedSpec(
            generics=generics,
            trait_ref=trait_ref,
            targets=tuple(type_from_dict(t) for t in d["targets"]),
            body=body,
            where_clause=where_clause,
        )
    if kind == "single":
        return SingleSpec(
            generics=generics,
            trait_ref=trait_ref,
            target=type_from_dict(d["target"]),
            body=body,
            where_clause=where_clause,
            index=d.get("index", 0),
            total=d.get("total", 1),
        )
    raise TypeError(f"Unsupported spec dict kind: {kind}")


def specs_to_json(specs: Sequence[Spec]) -> str:
    return json.dumps([spec_to_dict(s) for s in specs], sort_keys=True, indent=2)


def specs_from_json(s: str) -> List[Spec]:
    return [spec_from_dict(d) for d in json.loads(s)]


def specs_to_yaml(specs: Sequence[Spec]) -> str:
    return yaml.safe_dump([spec_to_dict(s) for s in specs], sort_keys=False)


def specs_from_yaml(s: str) -> List[Spec]:
    return [spec_from_dict(d) for d in yaml.safe_load(s) or []]
