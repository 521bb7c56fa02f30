from collections import deque

import numpy as np

from caterpillar.exceptions import InvalidConfiguration


class SequenceBuffer:
    """
    Буфер останніх спостережень фіксованої місткості (ковзне вікно, FIFO).

    Коли буфер заповнений, кожне нове значення витісняє найстаріше.
    Місткість задається при створенні й не змінюється.
    """

    def __init__(self, capacity: int, values=None):
        if capacity < 1:
            raise InvalidConfiguration(f"Місткість буфера має бути >= 1, отримано {capacity}")
        self.capacity = capacity
        self._values = deque(maxlen=capacity)
        if values is not None:
            self.extend(values)

    def append(self, value):
        self._values.append(float(value))

    def extend(self, values):
        for value in values:
            self.append(value)

    def window(self) -> np.ndarray:
        """Знімок поточних значень від найстарішого до найновішого."""
        return np.array(self._values, dtype=float)

    def reset(self):
        self._values.clear()

    @property
    def is_full(self) -> bool:
        return len(self._values) == self.capacity

    def __len__(self):
        return len(self._values)

    def __repr__(self):
        return f"SequenceBuffer(capacity={self.capacity}, length={len(self)})"


__all__ = ["SequenceBuffer"]
