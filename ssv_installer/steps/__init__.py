from .step_10_configure_swap import ConfigureSwapStep
from .step_20_update_system import UpdateSystemStep
from .step_30_clone_repositories import CloneRepositoriesStep
from .step_40_install_satellite import InstallSatelliteStep
from .step_50_install_wakeword import InstallWakewordStep
from .step_60_install_leds import InstallLedsStep
from .step_70_start_satellite import StartSatelliteStep
from .step_80_configure_pulseaudio import ConfigurePulseAudioStep
from .step_90_install_snapcast import InstallSnapcastStep
from .step_95_apply_enhancements import ApplyEnhancementsStep

__all__ = [
    "ConfigureSwapStep",
    "UpdateSystemStep",
    "CloneRepositoriesStep",
    "InstallSatelliteStep",
    "InstallWakewordStep",
    "InstallLedsStep",
    "StartSatelliteStep",
    "ConfigurePulseAudioStep",
    "InstallSnapcastStep",
    "ApplyEnhancementsStep",
]
