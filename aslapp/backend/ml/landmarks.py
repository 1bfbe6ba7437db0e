from __future__ import annotations

from enum import IntEnum
from typing import Dict, Mapping, NamedTuple, Optional, Sequence

import numpy as np


class HandJoint(IntEnum):
    """MediaPipe hand landmark indices, wrist first."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


# canonical order of the flat vector
HAND_JOINTS = tuple(HandJoint)
VALUES_PER_JOINT = 3
VECTOR_LENGTH = len(HAND_JOINTS) * VALUES_PER_JOINT


class JointSample(NamedTuple):
    x: float            # pixels
    y: float            # pixels
    confidence: float


JointSamples = Mapping[HandJoint, Optional[JointSample]]


def normalize(samples: JointSamples) -> np.ndarray:
    """
    Flatten joint samples into (x, y, confidence) triplets in HAND_JOINTS order.

    A joint that is absent (or None) is written as zeros, so an undetected
    joint looks exactly like one detected at the origin with zero confidence.
    """
    vec = np.zeros(VECTOR_LENGTH, dtype=np.float32)

    for i, joint in enumerate(HAND_JOINTS):
        sample = samples.get(joint)
        if sample is None:
            continue
        base = i * VALUES_PER_JOINT
        vec[base] = sample.x
        vec[base + 1] = sample.y
        vec[base + 2] = sample.confidence

    return vec


def _landmark_confidence(lm) -> float:
    # Tasks hand landmarks may carry presence or visibility, or neither (None).
    # The first one that is set is used as is, so a build that reports 0.0 yields 0.0;
    # with neither set the joint counts as fully confident (1.0).
    for attr in ("presence", "visibility"):
        v = getattr(lm, attr, None)
        if v is not None:
            return float(v)
    return 1.0


def joint_samples_from_landmarks(landmarks: Sequence, width: int, height: int) -> Dict[HandJoint, JointSample]:
    """
    landmarks: one hand from HandLandmarkerResult.hand_landmarks
    (normalized x/y in 0..1). Returns pixel-space samples.
    """
    out: Dict[HandJoint, JointSample] = {}
    for joint in HAND_JOINTS:
        if joint >= len(landmarks):
            break
        lm = landmarks[joint]
        if lm is None:
            continue
        out[joint] = JointSample(
            x=float(lm.x) * width,
            y=float(lm.y) * height,
            confidence=_landmark_confidence(lm),
        )
    return out
