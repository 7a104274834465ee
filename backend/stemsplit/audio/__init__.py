from stemsplit.audio.info import ALLOWED_EXTENSIONS, AudioInfo, get_audio_info, validate_input_file

__all__ = ["ALLOWED_EXTENSIONS", "AudioInfo", "get_audio_info", "validate_input_file"]
