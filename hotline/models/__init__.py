from hotline.models.audio_asset import AudioAsset
from hotline.models.call_log import CallLog
from hotline.models.hotline import Hotline
from hotline.models.hotline_audio_file import HotlineAudioFile
from hotline.models.organization import Organization
from hotline.models.phone_number import PhoneNumber

__all__ = [
    "AudioAsset",
    "CallLog",
    "Hotline",
    "HotlineAudioFile",
    "Organization",
    "PhoneNumber",
]
