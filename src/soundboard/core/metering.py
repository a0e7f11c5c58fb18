"""Audio level metering."""

import numpy as np

FFT_SIZE = 256
FLOOR_DB = -60.0

# Byte scaling of an analyser node: magnitudes between these bounds map to 0-255
_MIN_DECIBELS = -100.0
_MAX_DECIBELS = -30.0


def level_db(pcm16: bytes, fft_size: int = FFT_SIZE) -> float:
    """Estimate the input level of a PCM16 mono frame.

    The last ``fft_size`` samples are windowed and transformed; each bin's
    magnitude is scaled to a 0-255 byte as an analyser would, and the mean byte
    value is reported as ``20 * log10(mean / 255)``, floored at -60 dB.

    Args:
        pcm16: Raw little-endian 16-bit mono samples
        fft_size: Number of samples analysed

    Returns:
        Level in dB within [-60, 0]
    """
    samples = np.frombuffer(pcm16, dtype="<i2").astype(np.float32) / 32768.0
    if samples.size == 0:
        return FLOOR_DB
    if samples.size < fft_size:
        samples = np.pad(samples, (fft_size - samples.size, 0))
    else:
        samples = samples[-fft_size:]

    spectrum = np.abs(np.fft.rfft(samples * np.hanning(fft_size)))[: fft_size // 2] / fft_size
    with np.errstate(divide="ignore"):
        bin_db = 20.0 * np.log10(spectrum)
    scaled = (bin_db - _MIN_DECIBELS) / (_MAX_DECIBELS - _MIN_DECIBELS) * 255.0
    average = float(np.mean(np.clip(scaled, 0.0, 255.0)))

    if average <= 0.0:
        return FLOOR_DB
    return max(20.0 * float(np.log10(average / 255.0)), FLOOR_DB)
