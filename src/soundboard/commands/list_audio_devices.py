"""List available audio input and output devices."""

import logging

import pyaudio

logger = logging.getLogger(__name__)


def _collect_devices(audio: pyaudio.PyAudio) -> tuple[list[dict], list[dict]]:
    """Split PyAudio devices into input and output lists."""
    try:
        default_input = audio.get_default_input_device_info()["index"]
    except OSError as e:
        logger.warning(f"No default input device: {e}")
        default_input = None
    try:
        default_output = audio.get_default_output_device_info()["index"]
    except OSError as e:
        logger.warning(f"No default output device: {e}")
        default_output = None

    inputs, outputs = [], []
    for i in range(audio.get_device_count()):
        try:
            info = audio.get_device_info_by_index(i)
        except OSError as e:
            logger.warning(f"Error getting device {i} info: {e}")
            continue

        device = {
            "index": i,
            "name": info.get("name", "Unknown"),
            "sample_rate": int(info.get("defaultSampleRate", 0)),
        }
        if info.get("maxInputChannels", 0) > 0:
            inputs.append({**device, "channels": info["maxInputChannels"], "default": i == default_input})
        if info.get("maxOutputChannels", 0) > 0:
            outputs.append(
                {**device, "channels": info["maxOutputChannels"], "default": i == default_output}
            )
    return inputs, outputs


def _print_devices(title: str, devices: list[dict]):
    print(title)
    print("-" * 70)
    for dev in devices:
        default_marker = " (DEFAULT)" if dev["default"] else ""
        print(f"  [{dev['index']:2d}] {dev['name']}{default_marker}")
        print(f"       Channels: {dev['channels']}, Sample Rate: {dev['sample_rate']} Hz")
    print()


def main() -> bool:
    """List all available audio devices.

    Returns:
        True if successful, False otherwise
    """
    print("=" * 70)
    print("AVAILABLE AUDIO DEVICES")
    print("=" * 70)
    print()

    audio = pyaudio.PyAudio()

    try:
        inputs, outputs = _collect_devices(audio)
        print(f"Found {audio.get_device_count()} audio device(s):\n")

        if inputs:
            _print_devices("INPUT DEVICES (microphones):", inputs)
        if outputs:
            _print_devices("OUTPUT DEVICES (clip playback):", outputs)

        print("=" * 70)
        print("To pick devices in config.yaml, set:")
        print("  audio:")
        print('    device: "USB"            # Microphone, partial match, case-insensitive')
        print('    output_device: "Speakers" # Exact mixer device name, or null for default')
        print()
        return True

    except OSError as e:
        logger.error(f"Error listing audio devices: {e}", exc_info=True)
        print(f"\nError: {e}\n")
        return False

    finally:
        audio.terminate()
