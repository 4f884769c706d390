"""Built-in configuration overlay.

Feature toggles, hardware enablement and workaround disables applied on
top of the x86_64 defconfig when no profile overrides them.
"""

from kernel_rebuild.kconfig.overlay import ConfigOverlay

DEFAULT_OVERLAY_ENTRIES: list[tuple[str, str]] = [
    ("CONFIG_LOCALVERSION", '"-v1-thatwebsite"'),
    ("CONFIG_IPV6", "y"),
    ("CONFIG_DYNAMIC_DEBUG", "y"),
    # Thermals
    ("CONFIG_ACPI_THERMAL", "y"),
    ("CONFIG_THERMAL", "y"),
    ("CONFIG_MLXSW_CORE_THERMAL", "y"),
    ("CONFIG_THERMAL_NETLINK", "y"),
    ("CONFIG_INTEL_HFI_THERMAL", "y"),
    ("CONFIG_DEVFREQ_THERMAL", "y"),
    ("CONFIG_INTEL_TH_ACPI", "y"),
    ("CONFIG_X86_PKG_TEMP_THERMAL", "y"),
    # Squashfs root file system
    ("CONFIG_SQUASHFS", "y"),
    ("CONFIG_SQUASHFS_FILE_CACHE", "y"),
    ("CONFIG_SQUASHFS_DECOMP_MULTI_PERCPU", "y"),
    ("CONFIG_SQUASHFS_ZLIB", "y"),
    ("CONFIG_SQUASHFS_FRAGMENT_CACHE_SIZE", "3"),
    # Console on HDMI: simpledrm never takes over from the firmware logo,
    # efifb does.
    ("CONFIG_DRM_SIMPLEDRM", "n"),
    ("CONFIG_X86_SYSFB", "n"),
    ("CONFIG_FB", "y"),
    ("CONFIG_FB_EFI", "y"),
    ("CONFIG_FB_SIMPLE", "y"),
    # FUSE
    ("CONFIG_FUSE_FS", "y"),
    # netlink
    ("CONFIG_NETFILTER_NETLINK_QUEUE", "y"),
    ("CONFIG_XFRM_USER", "y"),
    # nftables
    ("CONFIG_NF_TABLES", "y"),
    ("CONFIG_NF_NAT_IPV4", "y"),
    ("CONFIG_NF_NAT_MASQUERADE_IPV4", "y"),
    ("CONFIG_NFT_PAYLOAD", "y"),
    ("CONFIG_NFT_EXTHDR", "y"),
    ("CONFIG_NFT_META", "y"),
    ("CONFIG_NFT_CT", "y"),
    ("CONFIG_NFT_RBTREE", "y"),
    ("CONFIG_NFT_HASH", "y"),
    ("CONFIG_NFT_COUNTER", "y"),
    ("CONFIG_NFT_LOG", "y"),
    ("CONFIG_NFT_LIMIT", "y"),
    ("CONFIG_NFT_NAT", "y"),
    ("CONFIG_NFT_COMPAT", "y"),
    ("CONFIG_NFT_MASQ", "y"),
    ("CONFIG_NFT_MASQ_IPV4", "y"),
    ("CONFIG_NFT_REDIR", "y"),
    ("CONFIG_NFT_REJECT", "y"),
    ("CONFIG_NF_TABLES_IPV4", "y"),
    ("CONFIG_NFT_REJECT_IPV4", "y"),
    ("CONFIG_NFT_CHAIN_ROUTE_IPV4", "y"),
    ("CONFIG_NFT_CHAIN_NAT_IPV4", "y"),
    ("CONFIG_NF_TABLES_IPV6", "y"),
    ("CONFIG_NFT_CHAIN_ROUTE_IPV6", "y"),
    ("CONFIG_NFT_OBJREF", "y"),
    ("CONFIG_NFT_DUP_IPV4", "y"),
    ("CONFIG_NFT_FIB_IPV4", "y"),
    ("CONFIG_NFT_DUP_IPV6", "y"),
    ("CONFIG_NFT_FIB_IPV6", "y"),
    # Conntrack helpers stay off to prevent NAT slipstreaming
    # (https://samy.pl/slipstream/)
    ("CONFIG_NF_CONNTRACK_AMANDA", "n"),
    ("CONFIG_NF_CONNTRACK_FTP", "n"),
    ("CONFIG_NF_CONNTRACK_H323", "n"),
    ("CONFIG_NF_CONNTRACK_IRC", "n"),
    ("CONFIG_NF_CONNTRACK_NETBIOS_NS", "n"),
    ("CONFIG_NF_CONNTRACK_SNMP", "n"),
    ("CONFIG_NF_CONNTRACK_PPTP", "n"),
    ("CONFIG_NF_CONNTRACK_SANE", "n"),
    ("CONFIG_NF_CONNTRACK_SIP", "n"),
    ("CONFIG_NF_CONNTRACK_TFTP", "n"),
    # USB mass storage
    ("CONFIG_USB_EHCI_HCD", "y"),
    ("CONFIG_USB_XHCI_HCD", "y"),
    ("CONFIG_USB_DEVICEFS", "y"),
    ("CONFIG_USB_STORAGE", "y"),
    # NVMe storage
    ("CONFIG_NVME_CORE", "y"),
    ("CONFIG_BLK_DEV_NVME", "y"),
    ("CONFIG_NVME_MULTIPATH", "y"),
    ("CONFIG_NVME_TARGET_PASSTHRU", "y"),
    # Network cards
    ("CONFIG_I40E", "y"),
    ("CONFIG_IGB", "y"),
    ("CONFIG_USB_RTL8152", "y"),
    ("CONFIG_ATL1C", "y"),
    ("CONFIG_ATL2", "y"),
    ("CONFIG_IGC", "y"),
    # /proc/config.gz
    ("CONFIG_IKCONFIG", "y"),
    ("CONFIG_IKCONFIG_PROC", "y"),
    ("CONFIG_KEXEC_FILE", "y"),
    # apu2c4 watchdog
    ("CONFIG_SP5100_TCO", "y"),
    # WireGuard
    ("CONFIG_NET_UDP_TUNNEL", "y"),
    ("CONFIG_WIREGUARD", "y"),
    # tc traffic shaping
    ("CONFIG_NET_SCH_TBF", "y"),
    # Temperature and fan sensors
    ("CONFIG_SENSORS_K10TEMP", "y"),
    ("CONFIG_SENSORS_NCT6683", "y"),
    ("CONFIG_SENSORS_CORSAIR_CPRO", "y"),
    # ss(8)
    ("CONFIG_INET_DIAG", "y"),
    ("CONFIG_MACVLAN", "y"),
    # virtio (qemu)
    ("CONFIG_VIRTIO_PCI", "y"),
    ("CONFIG_VIRTIO_BALLOON", "y"),
    ("CONFIG_VIRTIO_BLK", "y"),
    ("CONFIG_VIRTIO_NET", "y"),
    ("CONFIG_VIRTIO", "y"),
    ("CONFIG_VIRTIO_RING", "y"),
    ("CONFIG_I6300ESB_WDT", "y"),
    ("CONFIG_EFIVAR_FS", "y"),
    # Ryzen CPUs
    ("CONFIG_X86_AMD_PLATFORM_DEVICE", "y"),
    ("CONFIG_CPU_FREQ_DEFAULT_GOV_POWERSAVE", "y"),
    ("CONFIG_CPU_FREQ_GOV_POWERSAVE", "y"),
    ("CONFIG_X86_POWERNOW_K8", "y"),
    ("CONFIG_X86_AMD_FREQ_SENSITIVITY", "y"),
    # RAPL power capping
    ("CONFIG_POWERCAP", "y"),
    ("CONFIG_PERF_EVENTS_INTEL_RAPL", "y"),
    ("CONFIG_PROC_THERMAL_MMIO_RAPL", "y"),
    ("CONFIG_INTEL_RAPL_CORE", "y"),
    ("CONFIG_INTEL_RAPL", "y"),
    # Hardware interrupt time in /proc/stat
    ("CONFIG_IRQ_TIME_ACCOUNTING", "y"),
    ("CONFIG_TUN", "y"),
    # runc
    ("CONFIG_BPF_SYSCALL", "y"),
    ("CONFIG_CGROUP_FREEZER", "y"),
    ("CONFIG_CGROUP_BPF", "y"),
    ("CONFIG_SOCK_CGROUP_DATA", "y"),
    ("CONFIG_NET_SOCK_MSG", "y"),
    # podman
    ("CONFIG_OVERLAY_FS", "y"),
    ("CONFIG_BRIDGE", "y"),
    ("CONFIG_VETH", "y"),
    ("CONFIG_NETFILTER_ADVANCED", "y"),
    ("CONFIG_NETFILTER_XT_MATCH_COMMENT", "y"),
    ("CONFIG_IP_NF_NAT", "y"),
    ("CONFIG_IP_NF_TARGET_MASQUERADE", "y"),
    ("CONFIG_NETFILTER_XT_NAT", "y"),
    ("CONFIG_NETFILTER_XT_TARGET_MASQUERADE", "y"),
    ("CONFIG_NETFILTER_XT_MATCH_MULTIPORT", "y"),
    ("CONFIG_NETFILTER_XT_MARK", "y"),
    ("CONFIG_CGROUP_PIDS", "y"),
    ("CONFIG_MEMCG", "y"),
    # TCP BBR as default congestion control
    ("CONFIG_TCP_CONG_BBR", "y"),
    ("CONFIG_DEFAULT_BBR", "y"),
    ("CONFIG_DEFAULT_TCP_CONG", "bbr"),
    # Filesystems
    ("CONFIG_EXFAT_FS", "y"),
    ("CONFIG_NTFS3_FS", "y"),
    ("CONFIG_NTFS3_64BIT_CLUSTER", "y"),
    ("CONFIG_NTFS3_LZX_XPRESS", "y"),
    ("CONFIG_NTFS3_FS_POSIX_ACL", "y"),
    ("CONFIG_BTRFS_FS", "y"),
    ("CONFIG_XFS_FS", "y"),
    ("CONFIG_XFS_SUPPORT_V4", "y"),
    # HWMON
    ("CONFIG_NVME_HWMON", "y"),
    ("CONFIG_SCSI_UFS_HWMON", "y"),
    ("CONFIG_TIGON3_HWMON", "y"),
    ("CONFIG_BNXT_HWMON", "y"),
    ("CONFIG_BE2NET_HWMON", "y"),
    ("CONFIG_IGB_HWMON", "y"),
    ("CONFIG_IXGBE_HWMON", "y"),
    ("CONFIG_MLXSW_CORE_HWMON", "y"),
    ("CONFIG_QLCNIC_HWMON", "y"),
    ("CONFIG_POWER_SUPPLY_HWMON", "y"),
    ("CONFIG_HWMON", "y"),
    ("CONFIG_HWMON_VID", "y"),
    ("CONFIG_SENSORS_IIO_HWMON", "y"),
    ("CONFIG_SENSORS_MENF21BMC_HWMON", "y"),
    ("CONFIG_SENSORS_INTEL_M10_BMC_HWMON", "y"),
    ("CONFIG_THERMAL_HWMON", "y"),
    ("CONFIG_RTC_DRV_DS3232_HWMON", "y"),
    ("CONFIG_RTC_DRV_RV3029_HWMON", "y"),
    # Wireless
    ("CONFIG_ATH9K", "y"),
    ("CONFIG_ATH9K_AHB", "y"),
    ("CONFIG_RTW88", "m"),
    ("CONFIG_RTW88_CORE", "m"),
    ("CONFIG_RTW88_PCI", "m"),
    ("CONFIG_RTW88_8822B", "m"),
    ("CONFIG_RTW88_8822C", "m"),
    ("CONFIG_RTW88_8723D", "m"),
    ("CONFIG_RTW88_8821C", "m"),
    ("CONFIG_RTW88_8822BE", "m"),
    ("CONFIG_RTW88_8822CE", "m"),
    ("CONFIG_RTW88_8723DE", "m"),
    ("CONFIG_RTW88_8821CE", "m"),
    ("CONFIG_RTW88_DEBUG", "m"),
    ("CONFIG_RTW88_DEBUGFS", "m"),
    ("CONFIG_RTW89", "m"),
    ("CONFIG_RTW89_CORE", "m"),
    ("CONFIG_RTW89_PCI", "m"),
    ("CONFIG_RTW89_8852A", "m"),
    ("CONFIG_RTW89_8852AE", "m"),
    ("CONFIG_RTW89_DEBUG", "m"),
    ("CONFIG_IDEAPAD_LAPTOP", "y"),
    # Since 6.1, i915 trips -Werror=address in i915_sw_fence.h
    ("CONFIG_WERROR", "n"),
]


def default_overlay() -> ConfigOverlay:
    """Return a fresh copy of the built-in overlay."""
    return ConfigOverlay(DEFAULT_OVERLAY_ENTRIES)


__all__ = ["DEFAULT_OVERLAY_ENTRIES", "default_overlay"]
