"""Constants for TJBot local keyword listening."""

# Library metadata
VERSION = "v1.0.0"
STATUS = ("listening4keyword", "listening4audio", "speaking")
LISTEN_LANGUAGES = ("en-US",)

# Audio format expected by the local decoder
SAMPLE_RATE = 16000
CHANNELS = 1
SAMPLE_DTYPE = "int16"
BLOCK_SIZE = 1024  # frames per microphone block

# Silence detection
SILENCE_RMS_THRESHOLD = 0.01  # RMS energy, normalised to [0, 1]
SILENCE_BLOCKS = 6  # consecutive silent blocks before a silence event

# Microphone stream events
EVENT_START_COMPLETE = "startComplete"
EVENT_PROCESS_EXIT_COMPLETE = "processExitComplete"
EVENT_SILENCE = "silence"
EVENT_DATA = "data"
MICROPHONE_EVENTS = (
    EVENT_START_COMPLETE,
    EVENT_PROCESS_EXIT_COMPLETE,
    EVENT_SILENCE,
    EVENT_DATA,
)

# Hardware tags
HW_MICROPHONE = "microphone"
HW_SPEAKER = "speaker"
HW_LED = "led"

# Capabilities
CAP_LISTEN = "listen"
CAP_SPEAK = "speak"

# Supported local engines
ENGINE_POCKETSPHINX = "pocketsphinx"

# Default configuration
DEFAULT_ROBOT_NAME = "Watson"
DEFAULT_MICROPHONE_DEVICE = "plughw:1,0"
DEFAULT_SPEAKER_DEVICE = "plughw:0,0"
DEFAULT_ACOUSTIC_MODEL = "/usr/local/share/pocketsphinx/model/en-us/en-us"
DEFAULT_DICTIONARY = "./resources/ps/tjbot.dic"
DEFAULT_LANGUAGE_MODEL = "./resources/ps/tjbot.lm"
