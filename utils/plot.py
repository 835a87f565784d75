import matplotlib.pyplot as plt
import networkx as nx
import numpy as np
import pandas as pd
import seaborn as sns

import utils.config as config

plt.style.use('seaborn-v0_8-darkgrid')

# Drawing positions of the 33-bus feeder: main trunk plus three laterals
FEEDER_POS = {bus: (bus - 1, 0) for bus in range(1, 19)}
FEEDER_POS.update({19: (1, -1), 20: (2, -1), 21: (3, -1), 22: (4, -1)})
FEEDER_POS.update({23: (2, 1), 24: (3, 1), 25: (4, 1)})
FEEDER_POS.update({bus: (bus - 21, -2) for bus in range(26, 34)})


def plot_voltage_analysis(time, bus_voltages, v_steady, key_nodes=None) -> plt.Figure:
    """
    Four panels: steady profile with limits, key node history,
    deviation per node and a sorted voltage strip.
    """
    key_nodes = config.KEY_NODES if key_nodes is None else key_nodes
    nodes = np.arange(1, len(v_steady) + 1)

    fig, axes = plt.subplots(2, 2, figsize=(12, 8))

    # ---- 1. steady-state profile ----
    ax = axes[0, 0]
    ax.plot(nodes, v_steady, '-o', lw=2, markersize=6, label='Node Voltage')
    ax.axhline(config.V_NOMINAL, color=config.NOMINAL_COLOR, ls='--', lw=1.5, label='Nominal value')
    ax.axhline(config.V_LOW_ALARM, color=config.LIMIT_COLOR, ls='--', lw=1, alpha=0.5, label='±5% Limit value')
    ax.axhline(config.V_HIGH_ALARM, color=config.LIMIT_COLOR, ls='--', lw=1, alpha=0.5)
    ax.set_xlabel('Node Number')
    ax.set_ylabel('Voltage (p.u.)')
    ax.set_title('Steady-state voltage distribution', fontweight='bold')
    ax.set_xlim(1, len(v_steady))
    ax.set_ylim(v_steady.min() - 0.02, v_steady.max() + 0.02)
    ax.legend(loc='best')

    # ---- 2. key nodes over time ----
    ax = axes[0, 1]
    if time is None:
        ax.axis('off')
    else:
        hours = np.asarray(time) / 3600
        for node in key_nodes:
            if 1 <= node <= bus_voltages.shape[1]:
                ax.plot(hours, bus_voltages[:, node - 1], lw=2, label=f'node {node}')
        ax.set_xlabel('time (h)')
        ax.set_ylabel('voltage (p.u.)')
        ax.set_title('Critical node voltage time history', fontweight='bold')
        ax.legend(loc='best')

    # ---- 3. deviation per node ----
    ax = axes[1, 0]
    ax.bar(nodes, np.abs(v_steady - 1.0) * 100, color=config.DEVIATION_COLOR)
    ax.set_xlabel('Node Number')
    ax.set_ylabel('Voltage deviation (%)')
    ax.set_title('Voltage deviation at each node', fontweight='bold')
    ax.set_xlim(0, len(v_steady) + 1)

    # ---- 4. sorted voltage strip ----
    ax = axes[1, 1]
    image = ax.imshow(np.sort(v_steady)[None, :], cmap='jet', aspect='auto')
    fig.colorbar(image, ax=ax)
    ax.set_title('Voltage Level Heatmap (Sorted)', fontweight='bold')
    ax.set_ylabel('Voltage level')
    ax.set_xticks([])
    ax.set_yticks([])

    fig.tight_layout()
    return fig


def plot_voltage_heatmap(time, bus_voltages) -> plt.Figure:
    bus_voltages = np.asarray(bus_voltages)
    if time is None:
        columns = np.arange(bus_voltages.shape[0])
        xlabel = 'Sample'
    else:
        columns = [f'{int(t // 3600):02d}:{int(t % 3600 // 60):02d}' for t in np.asarray(time)]
        xlabel = 'Time (hh:mm)'
    frame = pd.DataFrame(
        bus_voltages.T,
        index=np.arange(1, bus_voltages.shape[1] + 1),
        columns=columns,
    )

    fig, ax = plt.subplots(figsize=(11, 4))
    sns.heatmap(
        frame,
        ax=ax,
        cmap='coolwarm',
        center=config.V_NOMINAL,
        cbar_kws=dict(label='Voltage (p.u.)'),
        xticklabels=max(1, frame.shape[1] // 12),
    )
    ax.set_ylabel('Bus')
    ax.set_xlabel(xlabel)
    ax.set_title('Bus voltage by bus & hour')
    fig.tight_layout()
    return fig


def plot_loss_analysis(line_losses, top_n: int = config.TOP_LOSS_LINES) -> plt.Figure:
    line_losses = np.asarray(line_losses)
    fig, (ax_bar, ax_pie) = plt.subplots(1, 2, figsize=(12, 6))

    ax_bar.bar(np.arange(1, len(line_losses) + 1), line_losses, color=config.LOSS_COLOR)
    ax_bar.set_xlabel('Line Number')
    ax_bar.set_ylabel('Power loss (kW)')
    ax_bar.set_title('Power loss of each line', fontweight='bold')

    order = np.argsort(line_losses)[::-1]
    top = order[:top_n]
    pie_data = list(line_losses[top]) + [line_losses[order[top_n:]].sum()]
    pie_labels = [f'Line {i + 1}' for i in top] + ['Other lines']
    if sum(pie_data) > 0:
        ax_pie.pie(pie_data)
        ax_pie.legend(pie_labels, loc='center left', bbox_to_anchor=(1.0, 0.5), fontsize=10)
    ax_pie.set_title('Power Loss Distribution', fontweight='bold')

    fig.tight_layout()
    return fig


def plot_branch_flow(branch_flow) -> plt.Figure:
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(np.arange(1, len(branch_flow) + 1), branch_flow, '-o', lw=2, markersize=6)
    ax.set_xlabel('Branch Number')
    ax.set_ylabel('Active power (kW)')
    ax.set_title('Branch Power Flow Distribution', fontweight='bold')
    fig.tight_layout()
    return fig


def plot_feeder_voltages(line_data: pd.DataFrame, v_steady) -> plt.Figure:
    """Feeder drawn with networkx, buses coloured by steady-state voltage."""
    graph = nx.Graph()
    graph.add_edges_from(zip(line_data.from_bus.astype(int), line_data.to_bus.astype(int)))
    if set(graph.nodes) <= set(FEEDER_POS):
        pos = FEEDER_POS
    else:
        pos = nx.spring_layout(graph, seed=config.RANDOM_SEED)

    nodes = sorted(graph.nodes)
    colors = [v_steady[n - 1] for n in nodes]

    fig, ax = plt.subplots(figsize=(14, 6))
    ax.set_facecolor('white')
    nx.draw_networkx_edges(graph, pos, edge_color='gray', alpha=0.8, ax=ax)
    drawn = nx.draw_networkx_nodes(
        graph, pos, nodelist=nodes, node_color=colors, cmap='jet',
        node_size=300, edgecolors='black', linewidths=1.5, ax=ax,
    )
    nx.draw_networkx_labels(graph, pos, font_size=8, ax=ax)
    fig.colorbar(drawn, ax=ax, label='Voltage (p.u.)')
    ax.set_title('33-Bus feeder steady-state voltage')
    ax.axis('off')
    fig.tight_layout()
    return fig
