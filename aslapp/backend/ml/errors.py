class ClassifierError(Exception):
    """Base class for everything the recognition pipeline can raise."""


class ModelLoadError(ClassifierError):
    """Model file missing or unparsable. Terminal for the session."""


class InferenceError(ClassifierError):
    pass


class EmptyScoreSetError(ClassifierError):
    pass


class LabelOutOfRangeError(ClassifierError):
    def __init__(self, index: int, n_labels: int):
        super().__init__(f"class index {index} has no label (label set size {n_labels})")
        self.index = index
        self.n_labels = n_labels


class UnsupportedOutputShapeError(ClassifierError):
    pass
