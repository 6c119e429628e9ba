import psutil

def get_cpu_info():
    """
        Core counts and clock range; the governor and C-state checks act on
        every logical core, so the report shows how many there are.
    """
    freq = psutil.cpu_freq()
    cpu_info = {
        "physical_cores": psutil.cpu_count(logical=False),
        "logical_cores": psutil.cpu_count(logical=True),
        # cpu_freq() is None on VMs without cpufreq
        "max_frequency_mhz": freq.max if freq else None,
        "current_frequency_mhz": freq.current if freq else None,
    }
    return cpu_info
