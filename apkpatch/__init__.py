"""APK Patch - byte-pattern patching of native libraries inside APK archives."""
