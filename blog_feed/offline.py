from __future__ import annotations

from typing import Any

_BACTERIOLOGY = {"_id": "cat-bact", "name": "Bacteriology", "slug": "bacteriology"}
_VIROLOGY = {"_id": "cat-viro", "name": "Virology", "slug": "virology"}
_IMMUNOLOGY = {"_id": "cat-immu", "name": "Immunology", "slug": "immunology"}

_DEFAULT_OFFLINE_POSTS: list[dict[str, Any]] = [
    {
        "_id": "p1",
        "title": "Bacterial Growth Curves in Batch Culture",
        "excerpt": "Lag, log, stationary and death phases measured by optical density.",
        "content": "We tracked E. coli growth at 37C and fitted a logistic model to OD600 readings.",
        "tags": ["bacteria", "growth", "e-coli"],
        "author": {"_id": "u1", "firstName": "Ada", "lastName": "Okafor"},
        "category": _BACTERIOLOGY,
        "createdAt": "2024-01-01T09:00:00.000Z",
        "views": 10,
        "likes": 2,
        "status": "published",
    },
    {
        "_id": "p2",
        "title": "Viral Replication Strategies of RNA Viruses",
        "excerpt": "How positive-sense genomes hijack host ribosomes.",
        "content": "Replication complexes assemble on remodelled membranes inside the host cell.",
        "tags": ["virus", "rna", "replication"],
        "author": {"_id": "u2", "firstName": "Mateo", "lastName": "Silva"},
        "category": _VIROLOGY,
        "createdAt": "2024-02-01T09:00:00.000Z",
        "views": 50,
        "likes": 11,
        "status": "published",
    },
    {
        "_id": "p3",
        "title": "Biofilms and Antibiotic Tolerance",
        "excerpt": "Extracellular matrix slows antibiotic penetration.",
        "content": "Persister cells inside Pseudomonas biofilms survive high drug concentrations.",
        "tags": ["biofilm", "antibiotics", "bacteria"],
        "author": {"_id": "u1", "firstName": "Ada", "lastName": "Okafor"},
        "category": _BACTERIOLOGY,
        "createdAt": "2024-03-15T09:00:00.000Z",
        "views": 34,
        "likes": 7,
        "status": "published",
    },
    {
        "_id": "p4",
        "title": "Innate Immune Sensing of Viral RNA",
        "excerpt": "RIG-I and MDA5 detect cytosolic double-stranded RNA.",
        "content": "Interferon signalling cascades follow pattern recognition receptor activation.",
        "tags": ["immunity", "interferon", "virus"],
        "author": {"_id": "u3", "firstName": "Lena", "lastName": "Brandt"},
        "category": _IMMUNOLOGY,
        "createdAt": "2024-04-20T09:00:00.000Z",
        "views": 21,
        "likes": 4,
        "status": "published",
    },
]


def offline_posts() -> list[dict[str, Any]]:
    """Small sample of backend-shaped post records for offline runs."""
    return [dict(item) for item in _DEFAULT_OFFLINE_POSTS]
