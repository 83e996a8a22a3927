"""File-backed thought graph: one JSON record per neuron, per edge, per category.

Layout:
    <storage root>/
        .lock                 # flock target for multi-file operations
        ids/
            neuron            # next neuron id
            pathway           # next pathway id
        neurons/
            <id|label>.nrn    # uncategorized neurons
            <category>/
                .category     # category record: name, parent, child_neurons
                <id|label>.nrn
                <sub-category>/...
        pathways/
            <id>.tlink        # edge record: weight, target

All paths inside records are relative to the storage root, so the tree can
be moved or copied as a whole.

Multi-file mutations and id allocation hold an exclusive lock on the root.
There are no transactions; ``scan_and_repair`` cleans up after an
interrupted operation.
"""

from mindstore.category import Category
from mindstore.codec import decode, encode
from mindstore.config import MindConfig, init_config, load_config
from mindstore.emotions import BasicVocabulary, Emotion, EmotionVocabulary
from mindstore.errors import (
    AllocatorUnavailable,
    BrokenEdge,
    CategoryNotFound,
    CreateFailed,
    InvalidHandle,
    InvalidName,
    MalformedRecord,
    MindStoreError,
    NeuronNotFound,
    NoSuchTarget,
    PathAlreadyExists,
    PathwayNotFound,
    RelocateFailed,
    UnknownEmotion,
)
from mindstore.ids import IdAllocator, IdScope
from mindstore.neuron import Neuron
from mindstore.paths import EntityKind, PathResolver
from mindstore.pathway import NeuralPathway, strongest_first
from mindstore.repair import RepairReport, check, scan_and_repair
from mindstore.store import MindStore

__all__ = [
    "AllocatorUnavailable",
    "BasicVocabulary",
    "BrokenEdge",
    "Category",
    "CategoryNotFound",
    "CreateFailed",
    "Emotion",
    "EmotionVocabulary",
    "EntityKind",
    "IdAllocator",
    "IdScope",
    "InvalidHandle",
    "InvalidName",
    "MalformedRecord",
    "MindConfig",
    "MindStore",
    "MindStoreError",
    "NeuralPathway",
    "Neuron",
    "NeuronNotFound",
    "NoSuchTarget",
    "PathAlreadyExists",
    "PathResolver",
    "PathwayNotFound",
    "RelocateFailed",
    "RepairReport",
    "UnknownEmotion",
    "check",
    "decode",
    "encode",
    "init_config",
    "load_config",
    "scan_and_repair",
    "strongest_first",
]
