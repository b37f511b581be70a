"""depot orchestration kernel.

Hosts independently developed modules (inventory, crafting, grid, network
bridge, terminal UI) in one single-threaded process:

 - kernel.modules    ordered loading of module sources
 - kernel.config     kernel settings + per-module typed options
 - kernel.scheduler  cooperative tasks woken by event-kind filters
 - kernel.crash      crash report written before a fatal exit
 - kernel.bootstrap  Kernel / KernelContext sequencing the above
"""
