#!/usr/bin/env python3

import matplotlib.pyplot as plt
import networkx as nx
from variables import CLOUD_LEVEL, PROXY_LEVEL, GATEWAY_LEVEL, EDGE_LEVEL

LEVEL_COLORS = {
    CLOUD_LEVEL: 'orange',
    PROXY_LEVEL: 'gold',
    GATEWAY_LEVEL: 'skyblue',
    EDGE_LEVEL: 'green',
}


def visualize_placement(topology, assignment=None):
    """
    Visualize the device tree and the modules placed on it.

    Args:
        topology: Topology of fog devices
        assignment: Optional PlacementAssignment whose modules label the devices

    Returns:
        The matplotlib figure
    """
    fig = plt.figure(figsize=(12, 8))

    # One row per level
    pos = nx.multipartite_layout(topology.graph, subset_key='level', align='horizontal')
    pos = {node: (x, -y) for node, (x, y) in pos.items()}

    node_colors = [LEVEL_COLORS.get(topology.device_by_id(node).level, 'lightgrey')
                   for node in topology.graph.nodes()]
    nx.draw_networkx_nodes(topology.graph, pos, node_size=500, node_color=node_colors, alpha=0.8)
    nx.draw_networkx_edges(topology.graph, pos, arrows=False, alpha=0.5)

    labels = {}
    for node in topology.graph.nodes():
        device = topology.device_by_id(node)
        label = device.name
        if assignment is not None:
            placed = [f"{module.name} x{assignment.instance_count(node, module.name)}"
                      for module in assignment.modules_on(node)]
            if placed:
                label += "\n" + "\n".join(placed)
        labels[node] = label
    nx.draw_networkx_labels(topology.graph, pos, labels=labels, font_size=8, font_family='sans-serif')

    # Edge label: uplink latency of the child
    edge_labels = {(u, v): f"{topology.graph[u][v]['latency']}ms" for u, v in topology.graph.edges()}
    nx.draw_networkx_edge_labels(topology.graph, pos, edge_labels=edge_labels, font_size=7)

    plt.title("Module Placement", fontsize=16)
    plt.axis('off')
    plt.text(0.02, 0.02, "Orange: cloud\nGold: proxy\nBlue: gateway\nGreen: edge",
             transform=plt.gca().transAxes, fontsize=10,
             bbox=dict(facecolor='white', alpha=0.7))
    plt.tight_layout()
    return fig


def show_device_info(topology):
    """
    Print information about each device in the topology.

    Args:
        topology: Topology of fog devices
    """
    print("\nDevice Information:")
    print("-" * 80)
    print(f"{'Device':^18} | {'Level':^6} | {'Parent':^18} | {'MIPS':^10} | {'RAM':^10} | {'BW pool':^8}")
    print("-" * 80)

    for device in topology.devices:
        parent = topology.parent(device.id)
        parent_name = parent.name if parent else "-"
        print(f"{device.name:^18} | {device.level:^6} | {parent_name:^18} | "
              f"{device.mips:^10.0f} | {device.ram:^10.0f} | {device.bw_provisioner.allocated_pool:^8}")
